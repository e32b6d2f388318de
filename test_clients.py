"""
Tests for the outbound clients: WhatsApp template sender, WooCommerce orders
and the email automation webhook. HTTP transports are replaced with mocks.
"""

import asyncio
from unittest.mock import AsyncMock

import aiohttp

from config import Settings
from outcomes import FailureReason
from automations.automator import AutomatorNotifier
from whatsapp.client import WhatsAppAPIError, WhatsAppClient, build_template_message
from woocommerce.client import WooCommerceAPIError, WooCommerceClient
from woocommerce.models import Order


MESSAGING = dict(waba_id="waba-1", phone_number_id="12345", meta_access_token="token")
STORE = dict(wc_url="https://loja.example.com/", wc_consumer_key="ck_1", wc_consumer_secret="cs_1")

ORDER_JSON = {
    "id": 777,
    "status": "completed",
    "total": "29.90",
    "billing": {"first_name": "Ana", "phone": "84998435471", "email": "ana@example.com"},
    "line_items": [{"id": 1, "name": "Plano Mensal", "meta_data": [{"id": 9, "key": "chave", "value": "K-1"}]}],
}


class TestTemplateMessage:

    def test_payload_shape(self):
        message = build_template_message("(84) 99843-5471", "pedido", ["Ana", "Plano", "R$ 29,90", "K-1"])
        payload = message.model_dump(exclude_none=True)

        assert payload == {
            "messaging_product": "whatsapp",
            "to": "5584998435471",
            "type": "template",
            "template": {
                "name": "pedido",
                "language": {"code": "pt_BR"},
                "components": [{
                    "type": "body",
                    "parameters": [
                        {"type": "text", "text": "Ana"},
                        {"type": "text", "text": "Plano"},
                        {"type": "text", "text": "R$ 29,90"},
                        {"type": "text", "text": "K-1"},
                    ]
                }]
            }
        }


class TestWhatsAppClient:

    def test_send_template_success(self):
        client = WhatsAppClient(Settings(**MESSAGING))
        client._make_request = AsyncMock(return_value={"messages": [{"id": "wamid.ABC"}]})

        outcome = asyncio.run(client.send_template("84998435471", "aviso_expiracao_hoje", ["Ana"]))

        assert outcome.ok
        assert outcome.data == "wamid.ABC"
        client._make_request.assert_awaited_once()
        kwargs = client._make_request.await_args.kwargs
        assert kwargs["method"] == "POST"
        assert kwargs["url"] == "https://graph.facebook.com/v20.0/12345/messages"
        assert kwargs["data"]["to"] == "5584998435471"
        assert kwargs["data"]["template"]["name"] == "aviso_expiracao_hoje"

    def test_missing_configuration_skips_network(self):
        client = WhatsAppClient(Settings(phone_number_id="12345", meta_access_token="token"))
        client._make_request = AsyncMock()

        outcome = asyncio.run(client.send_template("84998435471", "pedido", ["Ana"]))

        assert not outcome.ok
        assert outcome.reason == FailureReason.MISSING_CONFIGURATION
        client._make_request.assert_not_awaited()

    def test_api_error_is_returned_not_raised(self):
        client = WhatsAppClient(Settings(**MESSAGING))
        client._make_request = AsyncMock(side_effect=WhatsAppAPIError(400, {"error": {"message": "bad template"}}))

        outcome = asyncio.run(client.send_template("84998435471", "pedido", ["Ana"]))

        assert outcome.reason == FailureReason.TRANSPORT_FAILURE
        assert "400" in outcome.error_message

    def test_transport_error_is_returned_not_raised(self):
        client = WhatsAppClient(Settings(**MESSAGING))
        client._make_request = AsyncMock(side_effect=aiohttp.ClientConnectionError("connection reset"))

        outcome = asyncio.run(client.send_template("84998435471", "pedido", ["Ana"]))

        assert outcome.reason == FailureReason.TRANSPORT_FAILURE


class TestWooCommerceClient:

    def test_order_url(self):
        client = WooCommerceClient(Settings(**STORE))
        assert client.order_url(123) == "https://loja.example.com/wp-json/wc/v3/orders/123"
        assert client.order_url("12/3") == "https://loja.example.com/wp-json/wc/v3/orders/12%2F3"

    def test_fetch_order(self):
        client = WooCommerceClient(Settings(**STORE))
        client._get_json = AsyncMock(return_value=ORDER_JSON)

        outcome = asyncio.run(client.fetch_order("777"))

        assert outcome.ok
        order = outcome.data
        assert isinstance(order, Order)
        assert order.id == 777
        assert order.first_name == "Ana"
        assert order.line_items[0].meta_data == [("chave", "K-1")]
        client._get_json.assert_awaited_once_with("https://loja.example.com/wp-json/wc/v3/orders/777")

    def test_missing_configuration_skips_network(self):
        client = WooCommerceClient(Settings(wc_url="https://loja.example.com"))
        client._get_json = AsyncMock()

        outcome = asyncio.run(client.fetch_order("777"))

        assert outcome.reason == FailureReason.MISSING_CONFIGURATION
        client._get_json.assert_not_awaited()

    def test_not_found_is_upstream_failure(self):
        client = WooCommerceClient(Settings(**STORE))
        client._get_json = AsyncMock(side_effect=WooCommerceAPIError(404, '{"code":"woocommerce_rest_shop_order_invalid_id"}'))

        outcome = asyncio.run(client.fetch_order("999"))

        assert outcome.reason == FailureReason.UPSTREAM_FETCH_FAILURE

    def test_timeout_is_upstream_failure(self):
        client = WooCommerceClient(Settings(**STORE))
        client._get_json = AsyncMock(side_effect=asyncio.TimeoutError())

        outcome = asyncio.run(client.fetch_order("777"))

        assert outcome.reason == FailureReason.UPSTREAM_FETCH_FAILURE

    def test_malformed_meta_data_does_not_break_fetch(self):
        client = WooCommerceClient(Settings(**STORE))
        data = {**ORDER_JSON, "billing": {**ORDER_JSON["billing"], "phone": 84998435471}}
        data["line_items"] = [{"name": "Plano Mensal", "meta_data": [None, "chave", {"key": "chave", "value": "K-1"}]}]
        client._get_json = AsyncMock(return_value=data)

        outcome = asyncio.run(client.fetch_order("777"))

        assert outcome.ok
        assert outcome.data.phone == "84998435471"
        assert outcome.data.line_items[0].meta_data == [("chave", "K-1")]

    def test_unexpected_payload_is_upstream_failure(self):
        client = WooCommerceClient(Settings(**STORE))
        client._get_json = AsyncMock(return_value=[{"not": "an order"}])

        outcome = asyncio.run(client.fetch_order("777"))

        assert outcome.reason == FailureReason.UPSTREAM_FETCH_FAILURE


class TestAutomatorNotifier:

    def test_notify_posts_payload(self):
        notifier = AutomatorNotifier(Settings(automator_email_webhook_url="https://hooks.example.com/email"))
        notifier._post = AsyncMock(return_value=200)

        outcome = asyncio.run(notifier.notify_order("ana@example.com", "Ana", "K-1"))

        assert outcome.ok
        notifier._post.assert_awaited_once_with(
            {"email": "ana@example.com", "first_name": "Ana", "activation_code": "K-1"}
        )

    def test_not_configured(self):
        notifier = AutomatorNotifier(Settings())
        notifier._post = AsyncMock()

        outcome = asyncio.run(notifier.notify_order("ana@example.com", "Ana", "K-1"))

        assert outcome.reason == FailureReason.MISSING_CONFIGURATION
        notifier._post.assert_not_awaited()

    def test_failure_is_returned_not_raised(self):
        notifier = AutomatorNotifier(Settings(automator_email_webhook_url="https://hooks.example.com/email"))
        notifier._post = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))

        outcome = asyncio.run(notifier.notify_order("ana@example.com", "Ana", "K-1"))

        assert outcome.reason == FailureReason.TRANSPORT_FAILURE
