"""FastAPI application exposing the order service over JSON."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kiosk.errors import OrderNotFoundError, OrderValidationError
from kiosk.infra.config import AppConfig
from kiosk.notify.updates import UpdateHandler
from kiosk.service import OrderService

logger = logging.getLogger("kiosk.api")


def create_app(
    service: OrderService,
    config: Optional[AppConfig] = None,
    update_handler: Optional[UpdateHandler] = None,
) -> FastAPI:
    config = config or AppConfig()
    app = FastAPI(title="Coffee Kiosk Orders", version="0.1.0")

    @app.middleware("http")
    async def internal_error_guard(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(
                "Unhandled error on %s %s", request.method, request.url.path,
                extra={"event": "request_failed", "path": request.url.path},
            )
            return JSONResponse({"error": "Internal server error", "details": str(exc)}, status_code=500)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
    )

    @app.exception_handler(OrderValidationError)
    async def validation_failed(request: Request, exc: OrderValidationError) -> JSONResponse:
        return JSONResponse({"success": False, "error": str(exc)}, status_code=400)

    @app.exception_handler(RequestValidationError)
    async def malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"success": False, "error": "Request body must be a JSON object"}, status_code=400)

    @app.exception_handler(OrderNotFoundError)
    async def not_found(request: Request, exc: OrderNotFoundError) -> JSONResponse:
        return JSONResponse({"success": False, "error": "Order not found"}, status_code=404)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return service.health()

    @app.get("/status")
    async def status() -> Dict[str, Any]:
        return service.status()

    @app.get("/metrics")
    async def metrics() -> Dict[str, int]:
        return service.metrics.export()

    @app.post("/order")
    async def create_order(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
        outcome = await service.create_order(payload)
        return outcome.to_dict()

    @app.delete("/order/{target:path}")
    async def delete_order(target: str) -> Dict[str, Any]:
        # guest names may contain "/" (decoded before routing); coffee kinds never do
        guest, _, coffee = target.rpartition("/")
        notification = await service.delete_order(guest, coffee)
        return {"success": True, "message": "Order deleted", "telegram": notification.to_dict()}

    @app.delete("/orders")
    async def delete_all_orders() -> Dict[str, Any]:
        return await service.clear_orders()

    if update_handler is not None:

        @app.post(config.notifier.webhook_path)
        async def telegram_webhook(update: Dict[str, Any] = Body(...)) -> Dict[str, bool]:
            await update_handler.handle(update)
            return {"ok": True}

    return app


__all__ = ["create_app"]
