"""Fulfillment FastAPI application.

Web server that processes fulfillment commands synchronously via HTTP.
Each request is wrapped in the fulfillment domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay applied from domain.toml.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fulfillment.domain import fulfillment
from fulfillment.utils.logging import request_context

fulfillment.init()

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Fulfillment API",
    description="Order fulfillment — shipments, items, tracking and order status synchronization",
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
    """Push the fulfillment domain context and bind request details to log lines."""
    if not request.url.path.startswith("/fulfillments"):
        # Health check, docs, etc.
        return await call_next(request)
    with request_context(request.method, request.url.path), fulfillment.domain_context():
        return await call_next(request)


# ---------------------------------------------------------------------------
# Routers and error handling
# ---------------------------------------------------------------------------
from fulfillment.api.errors import register_exception_handlers  # noqa: E402
from fulfillment.api.routes import fulfillment_router  # noqa: E402

app.include_router(fulfillment_router)
register_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "fulfillment": {"name": fulfillment.name},
            },
        }
    )
