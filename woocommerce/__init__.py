"""
WooCommerce integration: order models, REST client and activation code lookup.
"""

from .models import BillingContact, LineItem, Order
from .client import WooCommerceClient
from .activation import ACTIVATION_KEY_ALIASES, NOT_AVAILABLE, extract_activation_code

__all__ = [
    "BillingContact",
    "LineItem",
    "Order",
    "WooCommerceClient",
    "ACTIVATION_KEY_ALIASES",
    "NOT_AVAILABLE",
    "extract_activation_code"
]
