"""
CargaPlay WhatsApp Integration Server

Receives webhooks from the store automation tool (order completed, license
reminders) and turns them into WhatsApp Business template messages.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from config import Settings
from automations import AutomatorNotifier, OrderWebhookPipeline, ReminderHandler, REMINDER_TEMPLATES
from automations.order_pipeline import PipelineResult
from whatsapp.client import WhatsAppClient
from woocommerce.client import WooCommerceClient

logger = logging.getLogger(__name__)

SERVICE_NAME = "CargaPlay WhatsApp Integration"


async def _read_payload(request: Request) -> Dict[str, Any]:
    """Parse the JSON body, treating anything but a JSON object as empty."""
    try:
        body = await request.json()
    except ValueError:
        logger.warning(f"Webhook {request.url.path} received a body that is not valid JSON")
        return {}

    if not isinstance(body, dict):
        logger.warning(f"Webhook {request.url.path} received a JSON {type(body).__name__}, expected an object")
        return {}
    return body


def _respond(result: PipelineResult) -> PlainTextResponse:
    return PlainTextResponse(result.message, status_code=result.status_code)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings, read from the environment if omitted
    """
    if settings is None:
        settings = Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the components on startup; drain pipelines and close sessions on shutdown."""
        logger.info("Initializing WhatsApp server components...")

        whatsapp_client = WhatsAppClient(settings)
        store_client = WooCommerceClient(settings)
        notifier = AutomatorNotifier(settings)

        app.state.whatsapp_client = whatsapp_client
        app.state.store_client = store_client
        app.state.notifier = notifier
        app.state.pipeline = OrderWebhookPipeline(settings, whatsapp_client, store_client, notifier)
        app.state.reminders = ReminderHandler(whatsapp_client)

        logger.info("WhatsApp server initialized successfully")

        yield

        logger.info("Shutting down WhatsApp server...")
        await app.state.pipeline.drain(settings.shutdown_grace_seconds)
        await whatsapp_client.close()
        await store_client.close()
        await notifier.close()
        logger.info("WhatsApp server shutdown complete")

    app = FastAPI(
        title=SERVICE_NAME,
        description="WooCommerce order and license reminder automations over WhatsApp Business",
        version="2.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """Liveness endpoint."""
        return "Servidor CargaPlay WhatsApp está no ar!"

    @app.get("/health")
    async def health_check(request: Request):
        """Component and configuration report."""
        state = request.app.state
        health_status = {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
            "components": {
                "whatsapp_client": getattr(state, "whatsapp_client", None) is not None,
                "store_client": getattr(state, "store_client", None) is not None,
                "order_pipeline": getattr(state, "pipeline", None) is not None,
                "reminders": getattr(state, "reminders", None) is not None
            },
            "environment": {
                "whatsapp_configured": settings.messaging_configured(),
                "woocommerce_configured": settings.store_configured(),
                "email_automation_configured": bool(settings.automator_email_webhook_url)
            },
            "reminders": sorted(REMINDER_TEMPLATES)
        }

        if not (all(health_status["components"].values())
                and health_status["environment"]["whatsapp_configured"]
                and health_status["environment"]["woocommerce_configured"]):
            health_status["status"] = "unhealthy"

        return health_status

    @app.post("/webhook/pedido", response_class=PlainTextResponse)
    async def order_webhook(request: Request):
        """Order completed: fetch the order and send the "pedido" template."""
        payload = await _read_payload(request)
        return _respond(await request.app.state.pipeline.handle(payload))

    @app.post("/webhook/pedido_concluido", response_class=PlainTextResponse)
    async def inline_order_webhook(request: Request):
        """Order completed, with the order data already in the body."""
        payload = await _read_payload(request)
        return _respond(await request.app.state.pipeline.handle_inline(payload))

    def add_reminder_route(kind: str):
        async def reminder_webhook(request: Request):
            payload = await _read_payload(request)
            return _respond(await request.app.state.reminders.handle(kind, payload))

        reminder_webhook.__doc__ = f"Reminder: sends template '{REMINDER_TEMPLATES[kind]}'."
        app.add_api_route(
            f"/webhook/{kind}",
            reminder_webhook,
            methods=["POST"],
            response_class=PlainTextResponse,
            name=f"reminder_{kind}"
        )

    for kind in REMINDER_TEMPLATES:
        add_reminder_route(kind)

    return app


_app: Optional[FastAPI] = None


def __getattr__(name: str):
    """
    Build the app for "uvicorn whatsapp_server:app" on first access, so that
    importing create_app does not read the environment.
    """
    global _app
    if name == "app":
        if _app is None:
            _app = create_app()
        return _app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
