"""Storefront FastAPI application.

Serves the ordering and payment APIs. Every /orders and /payment request is
wrapped in the ordering domain context, and all collaborators are built once
by the composition root. They are closed when the application shuts down.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from composition import build_services, install
from ordering.domain import ordering
from ordering.utils.logging import bind_request_context, clear_request_context, configure_logging
from settings import Settings

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# Initialized at module level so uvicorn workers share it.
configure_logging()
ordering.init()

settings = Settings.from_env()

_DOMAIN_PREFIXES = ("/orders", "/payment")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.services.close()


app = FastAPI(
    title="Storefront API",
    description="Order lifecycle and payment reconciliation",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context for order and payment requests."""
    if not request.url.path.startswith(_DOMAIN_PREFIXES):
        # Health check, docs, etc.
        return await call_next(request)

    bind_request_context(method=request.method, path=request.url.path)
    try:
        with ordering.domain_context():
            return await call_next(request)
    finally:
        clear_request_context()


# ---------------------------------------------------------------------------
# Error mapping, collaborators and routers
# ---------------------------------------------------------------------------
from ordering.api.routes import order_router  # noqa: E402
from payments.api.routes import payment_router  # noqa: E402
from shared.http import register_error_handlers  # noqa: E402

register_error_handlers(app)
install(app, build_services(settings))

app.include_router(order_router)
app.include_router(payment_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.environment,
            "domains": {"ordering": {"name": ordering.name}},
        }
    )
