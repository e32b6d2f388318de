"""
Order completed automation.

Receives the order webhook from the automation tool, waits for WooCommerce
to finish writing the order, fetches it, finds the activation code and
sends the "pedido" WhatsApp template plus the email automation trigger.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from config import Settings
from outcomes import Outcome
from whatsapp.client import WhatsAppClient
from whatsapp.formatters import (
    DEFAULT_PRODUCT_NAME,
    first_name_or_default,
    format_brl,
    join_item_names,
)
from woocommerce.activation import NOT_AVAILABLE, extract_activation_code
from woocommerce.client import WooCommerceClient
from woocommerce.models import Order
from .automator import AutomatorNotifier

logger = logging.getLogger(__name__)

ORDER_TEMPLATE = "pedido"
MIN_PHONE_LENGTH = 6


@dataclass
class PipelineResult:
    """HTTP status and plain text body returned to the webhook caller."""
    status_code: int
    message: str


@dataclass
class PendingOrderRequest:
    """In-flight order webhook, lives for one pipeline run."""
    order_id: str
    received_at: float = field(default_factory=time.monotonic)

    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.received_at


def order_id_from_payload(payload: Dict[str, Any]) -> Optional[str]:
    """Return the non-empty order id carried by the webhook, if any."""
    for key in ("order_key", "order_id"):
        value = payload.get(key)
        if value is None or isinstance(value, (dict, list, bool)):
            continue
        value = str(value).strip()
        if value:
            return value
    return None


def build_order_parameters(order: Order, activation_code: str) -> List[str]:
    """Positional values for the "pedido" template: name, products, total, code."""
    return [
        first_name_or_default(order.first_name),
        join_item_names(order.line_items),
        format_brl(order.total),
        activation_code,
    ]


class OrderWebhookPipeline:
    """
    Runs one order webhook from receipt to response.

    The settle delay waits on a shutdown event, so begin_shutdown() lets
    every waiting pipeline continue right away and drain() can wait for them.
    """

    def __init__(
        self,
        settings: Settings,
        whatsapp_client: WhatsAppClient,
        store_client: WooCommerceClient,
        notifier: AutomatorNotifier
    ):
        self.settle_delay = settings.settle_delay_seconds
        self.whatsapp_client = whatsapp_client
        self.store_client = store_client
        self.notifier = notifier

        self._closing = asyncio.Event()
        self._inflight: Set[asyncio.Task] = set()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def handle(self, payload: Dict[str, Any]) -> PipelineResult:
        """
        Process an order webhook.

        Returns:
            200 when the order was processed (even if a notification failed),
            400 without an order id, 500 when the order could not be fetched
        """
        order_id = order_id_from_payload(payload)
        if not order_id:
            logger.warning(f"Order webhook without order_key, ignoring: {payload}")
            return PipelineResult(400, "order_key ausente.")

        if not self.store_client.is_configured():
            logger.error(f"Cannot process order {order_id}: WooCommerce is not configured")
            return PipelineResult(500, "Integração WooCommerce não configurada.")

        pending = PendingOrderRequest(order_id)
        task = asyncio.current_task()
        if task is not None:
            self._inflight.add(task)
        try:
            return await self._run(pending)
        finally:
            self._inflight.discard(task)

    async def _run(self, pending: PendingOrderRequest) -> PipelineResult:
        logger.info(f"Order webhook received for order {pending.order_id}")

        await self._settle(pending)

        outcome = await self.store_client.fetch_order(pending.order_id)
        if not outcome.ok:
            logger.error(
                f"Order {pending.order_id} enrichment failed ({outcome.reason.value}): {outcome.error_message}"
            )
            return PipelineResult(500, "Erro ao buscar dados do pedido.")

        order: Order = outcome.data
        activation_code = extract_activation_code(order)

        results = await asyncio.gather(
            self._send_whatsapp(order, activation_code),
            self._notify_email(order, activation_code),
            return_exceptions=True
        )
        for channel, result in zip(("whatsapp", "email"), results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error in {channel} notification for order {order.id}", exc_info=result)
            elif result is not None and not result.ok:
                logger.warning(f"{channel} notification for order {order.id} failed: {result.error_message}")

        logger.info(f"Order {order.id} processed in {pending.elapsed_seconds():.1f}s")
        return PipelineResult(200, "Webhook de pedido processado.")

    async def _settle(self, pending: PendingOrderRequest):
        """Give WooCommerce time to finish writing the order."""
        if self.settle_delay <= 0 or self._closing.is_set():
            return

        logger.info(f"Waiting {self.settle_delay:g}s before fetching order {pending.order_id}")
        try:
            await asyncio.wait_for(self._closing.wait(), timeout=self.settle_delay)
            logger.info(f"Shutdown requested, fetching order {pending.order_id} now")
        except asyncio.TimeoutError:
            pass

    async def _send_whatsapp(self, order: Order, activation_code: str) -> Optional[Outcome]:
        if len(order.phone) < MIN_PHONE_LENGTH:
            logger.warning(f"Order {order.id} has no usable phone number ({order.phone!r}), skipping WhatsApp")
            return None

        return await self.whatsapp_client.send_template(
            order.phone,
            ORDER_TEMPLATE,
            build_order_parameters(order, activation_code)
        )

    async def _notify_email(self, order: Order, activation_code: str) -> Optional[Outcome]:
        if not self.notifier.is_configured() or not order.email:
            return None

        return await self.notifier.notify_order(
            order.email,
            first_name_or_default(order.first_name),
            activation_code
        )

    async def handle_inline(self, payload: Dict[str, Any]) -> PipelineResult:
        """
        Older automation variant that sends the order data inline:
        {phone, first_name, produto, valor, codigo}. No delay, no lookup.
        """
        phone = str(payload.get("phone") or "").strip()
        if not phone:
            logger.warning(f"Inline order webhook without phone, nothing to send: {payload.get('email')}")
            return PipelineResult(200, "Webhook de pedido concluído processado.")

        valor = payload.get("valor")
        if isinstance(valor, str) and valor.strip().startswith("R$"):
            total = valor.strip()
        else:
            total = format_brl(valor if valor not in (None, "") else 0)

        parameters = [
            first_name_or_default(payload.get("first_name")),
            str(payload.get("produto") or DEFAULT_PRODUCT_NAME),
            total,
            str(payload.get("codigo") or NOT_AVAILABLE),
        ]
        await self.whatsapp_client.send_template(phone, ORDER_TEMPLATE, parameters)
        return PipelineResult(200, "Webhook de pedido concluído processado.")

    def begin_shutdown(self):
        """Wake every pipeline waiting in its settle delay."""
        if not self._closing.is_set():
            logger.info(f"Shutdown started with {self.inflight} order(s) in flight")
        self._closing.set()

    async def drain(self, timeout: float) -> int:
        """
        Wait for in-flight pipelines, cancelling the ones still running after timeout.

        Returns:
            Number of pipelines cancelled
        """
        self.begin_shutdown()
        pending = {task for task in self._inflight if not task.done()}
        if not pending:
            return 0

        logger.info(f"Draining {len(pending)} order pipeline(s), up to {timeout:g}s")
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} order pipeline(s) after drain timeout")
        return len(still_running)
