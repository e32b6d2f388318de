#!/usr/bin/env python3
"""
CargaPlay WhatsApp Integration Runner

Loads settings, configures logging and serves the webhook app with uvicorn.
"""

import sys
import asyncio
import logging
from typing import Optional

import uvicorn
from pydantic import ValidationError

from config import Settings
from whatsapp_server import create_app


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure logging for the application."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )

    # Reduce noise from some libraries
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def check_environment(settings: Settings) -> bool:
    """Warn about missing settings. Components fail on their own when used."""
    logger = logging.getLogger(__name__)
    missing = settings.missing_messaging_settings() + settings.missing_store_settings()

    for var in missing:
        logger.warning(f"Missing environment variable: {var}")
    if not settings.automator_email_webhook_url:
        logger.info("AUTOMATOR_EMAIL_WEBHOOK_URL not set, email automation disabled")

    return not missing


class DrainingServer(uvicorn.Server):
    """uvicorn server that cuts pending settle delays short on SIGINT/SIGTERM."""

    def handle_exit(self, sig, frame):
        app = self.config.app
        pipeline = getattr(getattr(app, "state", None), "pipeline", None)
        if pipeline is not None:
            pipeline.begin_shutdown()
        super().handle_exit(sig, frame)


async def serve(settings: Settings):
    logger = logging.getLogger(__name__)

    app = create_app(settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=True,
        timeout_graceful_shutdown=int(settings.shutdown_grace_seconds)
    )
    server = DrainingServer(config)

    logger.info(f"Server listening on {settings.host}:{settings.port}")
    try:
        await server.serve()
    finally:
        logger.info("WhatsApp server stopped")


def main():
    """Main application entry point."""
    try:
        settings = Settings.from_env()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level, settings.log_file)
    check_environment(settings)

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
