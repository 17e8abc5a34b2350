"""Mapping of domain exceptions to HTTP responses.

Starlette resolves handlers along the exception's MRO, so the typed
conflicts registered here win over the generic ``ValidationError`` handler.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.exceptions import (
    CartPolicyConflict,
    PaymentVerificationFailed,
    StockConflict,
    first_message,
)
from marketplace.gateway import PaymentGatewayError

logger = structlog.get_logger(__name__)


def _messages(exc) -> dict:
    messages = getattr(exc, "messages", None)
    return messages if isinstance(messages, dict) else {}


def _respond(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=str(exc))
        else:
            logger.info("Request rejected", path=request.url.path, status_code=status_code, error=first_message(exc))
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "error": first_message(exc), "messages": _messages(exc)},
        )

    return handler


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ObjectNotFoundError, _respond(404))
    app.add_exception_handler(StockConflict, _respond(409))
    app.add_exception_handler(CartPolicyConflict, _respond(409))
    app.add_exception_handler(PaymentVerificationFailed, _respond(400))
    app.add_exception_handler(ValidationError, _respond(400))
    app.add_exception_handler(PaymentGatewayError, _respond(502))
