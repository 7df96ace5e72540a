"""Order server entry point: wires store, notifier, and HTTP API, then serves."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

import uvicorn
from dotenv import load_dotenv

from kiosk.api.app import create_app
from kiosk.infra.config import AppConfig, load_config
from kiosk.infra.logging import configure_logging
from kiosk.infra.metrics import MetricsSink
from kiosk.infra.persistence import JsonFileBackend, MemoryBackend, StorageBackend
from kiosk.notify.base import Notifier, NullNotifier
from kiosk.notify.telegram import TelegramNotifier
from kiosk.notify.updates import UpdateHandler, UpdatePoller, register_webhook
from kiosk.orders.store import OrderStore
from kiosk.service import OrderService


def build_backend(cfg: AppConfig) -> StorageBackend:
    if cfg.storage.mode == "file":
        return JsonFileBackend(cfg.storage.orders_file)
    return MemoryBackend()


def build_notifier(cfg: AppConfig, logger: logging.Logger) -> Notifier:
    notifier_cfg = cfg.notifier
    if notifier_cfg.mode == "disabled":
        logger.info("Notifier disabled by configuration")
        return NullNotifier()
    if not notifier_cfg.has_credentials:
        logger.warning("No usable Telegram bot token/chat id; notifications are disabled")
        return NullNotifier()
    return TelegramNotifier(
        token=notifier_cfg.bot_token.strip(),
        chat_id=notifier_cfg.chat_id.strip(),
        api_base_url=notifier_cfg.api_base_url,
        timeout_seconds=notifier_cfg.timeout_seconds,
        logger=logger.getChild("telegram"),
    )


def build_components(cfg: AppConfig) -> Tuple[OrderService, Notifier, Optional[UpdateHandler]]:
    """Construct the store (loaded once), notifier, service, and update handler."""

    logger = logging.getLogger("kiosk")
    store = OrderStore(build_backend(cfg), logger=logger.getChild("store"))
    store.load()
    notifier = build_notifier(cfg, logger)
    service = OrderService(store=store, notifier=notifier, coffee_kinds=cfg.coffee_kinds, metrics=MetricsSink())
    handler = UpdateHandler(service, notifier) if isinstance(notifier, TelegramNotifier) else None
    return service, notifier, handler


async def run_server(config_path: Optional[str] = None) -> None:
    load_dotenv()
    configure_logging()
    cfg = load_config(config_path)
    logger = logging.getLogger("kiosk.app")

    service, notifier, handler = build_components(cfg)
    webhook_handler = handler if cfg.notifier.mode == "webhook" else None
    app = create_app(service, cfg, update_handler=webhook_handler)

    server = uvicorn.Server(
        uvicorn.Config(app, host=cfg.server.host, port=cfg.server.port, log_level="info", log_config=None)
    )

    background: List[asyncio.Task] = []
    if handler is not None:
        background.append(asyncio.create_task(asyncio.to_thread(notifier.probe)))
        if cfg.notifier.mode == "polling":
            poller = UpdatePoller(notifier, handler, poll_timeout=cfg.notifier.poll_timeout_seconds)
            background.append(asyncio.create_task(poller.run()))
        else:
            background.append(asyncio.create_task(register_webhook(notifier, cfg.notifier.webhook_url)))

    logger.info(
        "Serving on %s:%s", cfg.server.host, cfg.server.port,
        extra={
            "event": "startup",
            "storage": cfg.storage.mode,
            "notifier": cfg.notifier.mode,
            "bot_status": notifier.state.value,
            "orders": len(service.store),
        },
    )

    # uvicorn handles SIGINT/SIGTERM; serve() returns once it has shut down
    try:
        await server.serve()
    finally:
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
    logger.info("Server stopped", extra={"event": "shutdown"})


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Coffee kiosk order server")
    parser.add_argument("--config", default="config/settings.yaml")
    args = parser.parse_args()
    asyncio.run(run_server(args.config))


if __name__ == "__main__":
    main()
