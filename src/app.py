"""Commerce FastAPI application.

Web server for carts, orders, inventory and coupons. Commands are processed
synchronously per request inside the commerce domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay from domain.toml.
from commerce.domain import commerce  # noqa: E402
from commerce.utils.logging import bind_request_context, clear_context
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

commerce.init()

_DOMAIN_PREFIXES = ("/carts", "/orders", "/inventory", "/coupons")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Commerce API",
    description="Cart and order lifecycle engine",
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
    """Push the commerce domain context for every domain route."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        clear_context()
        bind_request_context(method=request.method, path=request.url.path)
        with commerce.domain_context():
            response = await call_next(request)
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from commerce.api import (  # noqa: E402
    cart_router,
    coupon_router,
    inventory_router,
    order_router,
    register_envelope_handlers,
)

app.include_router(cart_router)
app.include_router(order_router)
app.include_router(inventory_router)
app.include_router(coupon_router)
register_envelope_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "commerce": {"name": commerce.name},
            },
        }
    )
