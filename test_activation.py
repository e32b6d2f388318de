"""
Tests for activation code lookup in WooCommerce line item metadata.
"""

import pytest

from woocommerce.activation import ACTIVATION_KEY_ALIASES, extract_activation_code
from woocommerce.models import Order


def make_order(line_items):
    return Order.model_validate({"id": 501, "line_items": line_items})


def test_code_on_second_line_item():
    order = make_order([
        {"name": "Brinde", "meta_data": [{"id": 1, "key": "_reduced_stock", "value": "1"}]},
        {"name": "Plano Anual", "meta_data": [{"id": 2, "key": "chave", "value": "XYZ-999"}]},
    ])
    assert extract_activation_code(order) == "XYZ-999"


def test_no_matching_key_returns_sentinel():
    order = make_order([
        {"name": "Plano Mensal", "meta_data": [{"key": "cor", "value": "azul"}]},
        {"name": "Suporte", "meta_data": []},
    ])
    assert extract_activation_code(order) == "N/A"


def test_no_line_items_returns_sentinel():
    assert extract_activation_code(make_order([])) == "N/A"


def test_list_value_takes_first_element():
    order = make_order([
        {"name": "Plano", "meta_data": [{"key": "_activation_keys", "value": ["A", "B"]}]},
    ])
    assert extract_activation_code(order) == "A"


def test_first_line_item_wins():
    order = make_order([
        {"name": "Plano 1", "meta_data": [{"key": "license_key", "value": "FIRST"}]},
        {"name": "Plano 2", "meta_data": [{"key": "_activation_keys", "value": "SECOND"}]},
    ])
    assert extract_activation_code(order) == "FIRST"


def test_alias_priority_within_line_item():
    order = make_order([
        {"name": "Plano", "meta_data": [
            {"key": "license_key", "value": "LOW"},
            {"key": "activation_key", "value": "HIGH"},
        ]},
    ])
    assert extract_activation_code(order) == "HIGH"


def test_empty_values_are_skipped():
    order = make_order([
        {"name": "Plano", "meta_data": [
            {"key": "_activation_keys", "value": []},
            {"key": "key_code", "value": ""},
            {"key": "license", "value": "LIC-1"},
        ]},
    ])
    assert extract_activation_code(order) == "LIC-1"


def test_mapping_metadata_is_accepted():
    order = make_order([{"name": "Plano", "meta_data": {"key_code": 12345}}])
    assert extract_activation_code(order) == "12345"


@pytest.mark.parametrize("alias", ACTIVATION_KEY_ALIASES)
def test_every_alias_is_recognized(alias):
    order = make_order([{"name": "Plano", "meta_data": [{"key": alias, "value": "CODE"}]}])
    assert extract_activation_code(order) == "CODE"


def test_malformed_meta_entries_are_skipped():
    order = make_order([
        {"name": "Plano", "meta_data": [
            None,
            "license_key",
            ["a", "b", "c"],
            {"value": "no key"},
            {"key": "license_key", "value": "OK-1"},
        ]},
    ])
    assert order.line_items[0].meta_data == [("license_key", "OK-1")]
    assert extract_activation_code(order) == "OK-1"


def test_pair_entries_are_accepted():
    order = make_order([{"name": "Plano", "meta_data": [["chave", "PAIR-1"]]}])
    assert extract_activation_code(order) == "PAIR-1"


@pytest.mark.parametrize("meta_data", ["license_key", 42])
def test_non_list_meta_data_is_ignored(meta_data):
    order = make_order([{"name": "Plano", "meta_data": meta_data}])
    assert order.line_items[0].meta_data == []
    assert extract_activation_code(order) == "N/A"
