"""
Result type shared by every outbound call.

Outbound clients never raise past their boundary; they return an Outcome
and the caller decides whether a failure is fatal.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel


class FailureReason(str, Enum):
    """Why an outbound call did not succeed."""
    MISSING_CONFIGURATION = "missing_configuration"
    UPSTREAM_FETCH_FAILURE = "upstream_fetch_failure"
    TRANSPORT_FAILURE = "transport_failure"


class Outcome(BaseModel):
    """Success or failure of a single outbound call."""

    status: Literal["success", "error"]
    reason: Optional[FailureReason] = None
    error_message: Optional[str] = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @classmethod
    def success(cls, data: Any = None) -> "Outcome":
        return cls(status="success", data=data)

    @classmethod
    def sent(cls, message_id: Optional[str] = None) -> "Outcome":
        """Successful message send carrying the provider message id."""
        return cls.success(message_id)

    @classmethod
    def failed(cls, reason: FailureReason, message: str) -> "Outcome":
        return cls(status="error", reason=reason, error_message=message)
