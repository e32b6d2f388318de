"""
WhatsApp Business API Integration Module

Template message sending and placeholder formatting for the CargaPlay
order and reminder automations.
"""

from .client import WhatsAppClient, TemplateMessage, build_template_message
from .formatters import normalize_phone, format_brl, join_item_names, first_name_or_default

__all__ = [
    "WhatsAppClient",
    "TemplateMessage",
    "build_template_message",
    "normalize_phone",
    "format_brl",
    "join_item_names",
    "first_name_or_default"
]

__version__ = "2.0.0"
