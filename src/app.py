"""Campus marketplace FastAPI application.

Web server that processes marketplace commands synchronously via HTTP.
Every request runs inside the marketplace domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay in domain.toml:
#   - "test"/"development" → memory provider, inline broker
#   - "production"         → PostgreSQL
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from marketplace.api.dependencies import get_settings
from marketplace.domain import marketplace
from marketplace.utils.logging import add_context, clear_context, configure_logging

configure_logging()
marketplace.init()

# Fail fast on bad payment configuration
settings = get_settings()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Campus Marketplace API",
    description="Carts, orders, payment settlement and the vendor inventory ledger",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context and bind request log context."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    with marketplace.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api import (  # noqa: E402
    cart_router,
    inventory_router,
    order_router,
    payment_router,
    register_exception_handlers,
)

register_exception_handlers(app)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(inventory_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domain": marketplace.name,
            "payment_gateway": settings.payment_gateway,
        }
    )
