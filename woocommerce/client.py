"""
WooCommerce REST API client.

Fetches single orders from /wp-json/wc/v3/orders/{id} using the store's
consumer key and secret as basic auth credentials.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from config import Settings
from outcomes import FailureReason, Outcome
from .models import Order

logger = logging.getLogger(__name__)

ORDERS_PATH = "/wp-json/wc/v3/orders/{order_id}"


class WooCommerceAPIError(Exception):
    """Raised by _get_json when the store answers with an error status."""

    def __init__(self, status: int, body: Any):
        super().__init__(f"WooCommerce API error: {status} - {body}")
        self.status = status
        self.body = body


class WooCommerceClient:
    """Read-only WooCommerce orders client."""

    def __init__(self, settings: Settings):
        self.base_url = (settings.wc_url or "").rstrip("/")
        self.consumer_key = settings.wc_consumer_key
        self.consumer_secret = settings.wc_consumer_secret
        self.timeout = settings.request_timeout_seconds

        self.session: Optional[aiohttp.ClientSession] = None

    def is_configured(self) -> bool:
        return all([self.base_url, self.consumer_key, self.consumer_secret])

    def order_url(self, order_id: Union[str, int]) -> str:
        return self.base_url + ORDERS_PATH.format(order_id=quote(str(order_id), safe=""))

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            auth = aiohttp.BasicAuth(self.consumer_key, self.consumer_secret)
            self.session = aiohttp.ClientSession(timeout=timeout, auth=auth)
        return self.session

    async def _get_json(self, url: str) -> Dict[str, Any]:
        """
        GET a JSON document from the store.

        Raises:
            WooCommerceAPIError: If the store answers with status >= 400
            aiohttp.ClientError: On transport errors
        """
        session = await self._get_session()

        async with session.get(url, headers={"Accept": "application/json"}) as response:
            if response.status >= 400:
                raise WooCommerceAPIError(response.status, await response.text())
            return await response.json(content_type=None)

    async def fetch_order(self, order_id: Union[str, int]) -> Outcome:
        """
        Fetch one order.

        Args:
            order_id: WooCommerce order id

        Returns:
            Outcome whose data is the parsed Order
        """
        if not self.is_configured():
            logger.error("WooCommerce credentials missing, check WC_URL, WC_CONSUMER_KEY and WC_CONSUMER_SECRET")
            return Outcome.failed(FailureReason.MISSING_CONFIGURATION, "WooCommerce credentials not configured")

        url = self.order_url(order_id)
        logger.info(f"Fetching WooCommerce order {order_id}")

        try:
            data = await self._get_json(url)
        except WooCommerceAPIError as e:
            logger.error(f"Failed to fetch order {order_id}: status {e.status}, body {e.body}")
            return Outcome.failed(FailureReason.UPSTREAM_FETCH_FAILURE, str(e))
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"HTTP client error fetching order {order_id}: {e!r}")
            return Outcome.failed(FailureReason.UPSTREAM_FETCH_FAILURE, f"HTTP client error: {e!r}")

        try:
            order = Order.model_validate(data)
        except (ValidationError, TypeError) as e:
            logger.error(f"Order {order_id} returned an unexpected payload: {e}")
            return Outcome.failed(FailureReason.UPSTREAM_FETCH_FAILURE, f"Invalid order payload: {e}")

        logger.debug(f"Fetched order: {order.meta_summary()}")
        return Outcome.success(order)

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.info("WooCommerce client session closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
