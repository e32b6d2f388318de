"""
Email automation webhook notifier.

Forwards the activation code to the email automation tool so it can send
its own order email. Best effort: the caller only logs the outcome.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from config import Settings
from outcomes import FailureReason, Outcome

logger = logging.getLogger(__name__)


class AutomatorNotifier:
    """POSTs order details to AUTOMATOR_EMAIL_WEBHOOK_URL."""

    def __init__(self, settings: Settings):
        self.webhook_url = settings.automator_email_webhook_url
        self.timeout = settings.request_timeout_seconds
        self.session: Optional[aiohttp.ClientSession] = None

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self.session

    async def _post(self, payload: Dict[str, Any]) -> int:
        session = await self._get_session()
        async with session.post(self.webhook_url, json=payload) as response:
            body = await response.text()
            if response.status >= 400:
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=body[:500]
                )
            return response.status

    async def notify_order(self, email: str, first_name: str, activation_code: str) -> Outcome:
        if not self.is_configured():
            logger.info("AUTOMATOR_EMAIL_WEBHOOK_URL not set, skipping email automation")
            return Outcome.failed(FailureReason.MISSING_CONFIGURATION, "Email automation webhook not configured")

        payload = {
            "email": email,
            "first_name": first_name,
            "activation_code": activation_code
        }

        try:
            status = await self._post(payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Email automation webhook failed for {email}: {e!r}")
            return Outcome.failed(FailureReason.TRANSPORT_FAILURE, f"Email automation webhook failed: {e!r}")

        logger.info(f"Email automation triggered for {email} (status {status})")
        return Outcome.success(status)

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
