"""
Activation code lookup for WooCommerce orders.

License plugins store the code in line item metadata under different keys
depending on the product type, so the lookup tries a list of known aliases.
"""

import logging
from typing import Any, Optional, Sequence

from .models import LineItem, Order

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

# Priority order matters: the first alias present on a line item wins
ACTIVATION_KEY_ALIASES = (
    "_activation_keys",
    "activation_key",
    "key_code",
    "chave",
    "license",
    "license_key",
)


def _first_value(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None or value == "":
        return None
    return str(value)


def find_in_line_item(item: LineItem, aliases: Sequence[str] = ACTIVATION_KEY_ALIASES) -> Optional[str]:
    """
    Look for an activation code in a single line item.

    Args:
        item: Order line item
        aliases: Metadata keys to try, highest priority first

    Returns:
        The code, or None if no alias carries a usable value
    """
    for alias in aliases:
        for key, value in item.meta_data:
            if key != alias:
                continue
            code = _first_value(value)
            if code is not None:
                return code
    return None


def extract_activation_code(order: Order, aliases: Sequence[str] = ACTIVATION_KEY_ALIASES) -> str:
    """
    Return the activation code of the first line item that has one.

    Never fails: orders without a code get "N/A".
    """
    for index, item in enumerate(order.line_items):
        code = find_in_line_item(item, aliases)
        if code is not None:
            logger.info(f"Activation code found for order {order.id} in line item {index} ({item.name})")
            return code

    logger.warning(f"No activation code found for order {order.id}, keys tried: {', '.join(aliases)}")
    return NOT_AVAILABLE
