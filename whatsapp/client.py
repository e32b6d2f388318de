"""
WhatsApp Business Cloud API Client

Sends pre-approved template messages through Meta's Graph API.
"""

import asyncio
import logging
from typing import Dict, Any, Optional, Sequence

import aiohttp
from pydantic import BaseModel

from config import Settings
from outcomes import FailureReason, Outcome
from .formatters import normalize_phone

logger = logging.getLogger(__name__)

TEMPLATE_LANGUAGE = "pt_BR"


class WhatsAppMessage(BaseModel):
    """Base model for WhatsApp messages."""
    messaging_product: str = "whatsapp"
    to: str
    type: str


class TemplateMessage(WhatsAppMessage):
    """Template message model."""
    type: str = "template"
    template: Dict[str, Any]


class WhatsAppAPIError(Exception):
    """Raised by _make_request when the Graph API answers with an error status."""

    def __init__(self, status: int, body: Any):
        super().__init__(f"WhatsApp API error: {status} - {body}")
        self.status = status
        self.body = body


def build_template_message(to: str, template_name: str, parameters: Sequence[str]) -> TemplateMessage:
    """
    Build a template message with a single body component.

    Args:
        to: Recipient phone number, any format
        template_name: Exact name of the template approved by Meta
        parameters: Values bound positionally to the template placeholders

    Returns:
        TemplateMessage ready to be serialized
    """
    return TemplateMessage(
        to=normalize_phone(to),
        template={
            "name": template_name,
            "language": {"code": TEMPLATE_LANGUAGE},
            "components": [
                {
                    "type": "body",
                    "parameters": [
                        {"type": "text", "text": str(value)}
                        for value in parameters
                    ]
                }
            ]
        }
    )


class WhatsAppClient:
    """
    WhatsApp Business Cloud API client for sending template messages.

    Missing credentials do not stop the client from being built; every send
    checks them and fails without touching the network.
    """

    def __init__(self, settings: Settings):
        """
        Initialize WhatsApp client.

        Args:
            settings: Application settings carrying the Meta credentials
        """
        self.waba_id = settings.waba_id
        self.phone_number_id = settings.phone_number_id
        self.access_token = settings.meta_access_token
        self.api_version = settings.graph_api_version
        self.timeout = settings.request_timeout_seconds

        self.base_url = f"https://graph.facebook.com/{self.api_version}/{self.phone_number_id}/messages"

        # HTTP session for connection pooling
        self.session: Optional[aiohttp.ClientSession] = None

        if self.is_configured():
            logger.info(f"WhatsApp client initialized for phone number ID: {self.phone_number_id}")
        else:
            logger.warning("WhatsApp client created without full credentials; sends will be skipped")

    def is_configured(self) -> bool:
        return all([self.waba_id, self.phone_number_id, self.access_token])

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    async def _make_request(
        self,
        method: str,
        url: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make HTTP request to WhatsApp API.

        Raises:
            WhatsAppAPIError: If the API answers with status >= 400
            aiohttp.ClientError: On transport errors
        """
        session = await self._get_session()

        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json"
        }

        async with session.request(method=method, url=url, json=data, headers=headers) as response:
            try:
                response_data = await response.json(content_type=None)
            except ValueError:
                response_data = await response.text()

            if response.status >= 400:
                raise WhatsAppAPIError(response.status, response_data)

            logger.debug(f"WhatsApp API response: {response_data}")
            return response_data

    async def send_template(
        self,
        to: str,
        template_name: str,
        parameters: Sequence[str] = ()
    ) -> Outcome:
        """
        Send a template message.

        Args:
            to: Recipient phone number, normalized before sending
            template_name: Approved template name
            parameters: Positional placeholder values

        Returns:
            Outcome with the provider message id on success
        """
        logger.info(f"Sending template '{template_name}' to {to}...")

        if not self.is_configured():
            logger.error(
                "WhatsApp credentials missing, check WABA_ID, PHONE_NUMBER_ID and META_ACCESS_TOKEN"
            )
            return Outcome.failed(FailureReason.MISSING_CONFIGURATION, "WhatsApp credentials not configured")

        message = build_template_message(to, template_name, parameters)
        payload = message.model_dump(exclude_none=True)
        logger.debug(f"Template payload: {payload}")

        try:
            response = await self._make_request(method="POST", url=self.base_url, data=payload)
        except WhatsAppAPIError as e:
            logger.error(f"Failed to send template '{template_name}' to {message.to}: status {e.status}, body {e.body}")
            return Outcome.failed(FailureReason.TRANSPORT_FAILURE, str(e))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"HTTP client error sending template '{template_name}' to {message.to}: {e!r}")
            return Outcome.failed(FailureReason.TRANSPORT_FAILURE, f"HTTP client error: {e!r}")

        message_id = None
        if isinstance(response, dict):
            message_id = (response.get("messages") or [{}])[0].get("id")
        logger.info(f"Template '{template_name}' sent to {message.to}: {message_id}")
        return Outcome.sent(message_id)

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.info("WhatsApp client session closed")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
