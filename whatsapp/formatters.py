"""
WhatsApp Message Formatters

Turns raw order data into the text values bound to template placeholders:
dialable phone numbers, BRL prices, product name lists.
"""

import re
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Optional, Union

logger = logging.getLogger(__name__)

COUNTRY_CODE = "55"
DEFAULT_FIRST_NAME = "Cliente"
DEFAULT_PRODUCT_NAME = "Produto"

_NON_DIGITS = re.compile(r"\D")
_CENTS = Decimal("0.01")


def normalize_phone(raw: Optional[str]) -> str:
    """
    Strip everything but digits and make sure the number starts with 55.

    A local number that happens to start with 55 is left alone; there is no
    length check, the provider rejects numbers it cannot deliver to.

    Args:
        raw: Phone number in any format, e.g. "(84) 99843-5471"

    Returns:
        Digits with country code, e.g. "5584998435471"
    """
    digits = _NON_DIGITS.sub("", str(raw) if raw is not None else "")
    if digits.startswith(COUNTRY_CODE):
        return digits
    return f"{COUNTRY_CODE}{digits}"


def format_brl(total: Union[str, int, float, Decimal, None]) -> str:
    """
    Format an amount as Brazilian reais: "R$ 29,90".

    Args:
        total: Amount as a number or numeric string

    Returns:
        Formatted price string
    """
    try:
        amount = Decimal(str(total).strip())
        if not amount.is_finite():
            raise InvalidOperation(total)
        # Raises InvalidOperation past the context precision, e.g. "1e30"
        amount = amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        logger.warning(f"Could not format order total {total!r}, using 0")
        amount = Decimal("0.00")

    return f"R$ {amount}".replace(".", ",")


def join_item_names(items: Iterable[Any], placeholder: str = DEFAULT_PRODUCT_NAME) -> str:
    """
    Join line item display names with ", ".

    Args:
        items: Objects with a ``name`` attribute
        placeholder: Text used when there are no named items

    Returns:
        Comma separated names
    """
    names = [item.name for item in items if getattr(item, "name", None)]
    return ", ".join(names) if names else placeholder


def first_name_or_default(name: Any, default: str = DEFAULT_FIRST_NAME) -> str:
    # Webhook bodies are raw JSON, the name may be a number or a boolean
    name = str(name).strip() if name is not None else ""
    return name or default
