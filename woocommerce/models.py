"""
WooCommerce order models.

Only the fields the automations read are declared; everything else the REST
API returns is ignored.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class BillingContact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    phone: str = ""
    email: str = ""
    first_name: str = ""

    @field_validator("phone", "email", "first_name", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        # Stores sometimes send the phone as a number
        return "" if value is None else str(value)


class LineItem(BaseModel):
    """A single order line with its product metadata."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    # (key, value) pairs in the order WooCommerce returned them
    meta_data: List[Tuple[str, Any]] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _none_name(cls, value):
        return "" if value is None else str(value)

    @field_validator("meta_data", mode="before")
    @classmethod
    def _flatten_meta(cls, value):
        """
        Accept the REST API shape ``[{"id": 1, "key": "...", "value": ...}]``
        as well as a plain ``{"key": value}`` mapping.
        """
        if value is None:
            return []
        if isinstance(value, dict):
            return [(str(key), item) for key, item in value.items()]

        if not isinstance(value, (list, tuple)):
            logger.warning(f"Ignoring line item meta_data of type {type(value).__name__}")
            return []

        entries = []
        for entry in value:
            if isinstance(entry, dict):
                if "key" in entry:
                    entries.append((str(entry["key"]), entry.get("value")))
            elif isinstance(entry, (list, tuple)) and len(entry) == 2:
                entries.append((str(entry[0]), entry[1]))
            else:
                logger.warning(f"Ignoring malformed line item meta_data entry: {entry!r}")
        return entries


class Order(BaseModel):
    """Order record fetched from /wp-json/wc/v3/orders/{id}."""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    billing: BillingContact = Field(default_factory=BillingContact)
    line_items: List[LineItem] = Field(default_factory=list)
    total: Union[str, int, float, Decimal, None] = None

    @field_validator("billing", mode="before")
    @classmethod
    def _none_billing(cls, value):
        return {} if value is None else value

    @field_validator("line_items", mode="before")
    @classmethod
    def _none_items(cls, value):
        return [] if value is None else value

    @property
    def phone(self) -> str:
        return self.billing.phone

    @property
    def email(self) -> str:
        return self.billing.email

    @property
    def first_name(self) -> str:
        return self.billing.first_name

    def meta_summary(self) -> Dict[str, Any]:
        """Short description for log lines."""
        return {
            "id": self.id,
            "items": len(self.line_items),
            "has_phone": bool(self.phone),
            "has_email": bool(self.email),
        }
