# backend/app/main.py
from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, List

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from starlette.middleware.gzip import GZipMiddleware

from .core.broadcast import connect_broadcast, disconnect_broadcast, is_broadcast_initialized
from .core.config import settings
from .core.constants import API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .events import event_bus
from .events.handlers import register_default_handlers
from .middleware.timing_asgi import TimingMiddlewareASGI
from .routes.v1 import (
    analytics as analytics_v1,
    auth as auth_v1,
    clients as clients_v1,
    coaches as coaches_v1,
    communities as communities_v1,
    content as content_v1,
    conversations as conversations_v1,
    courses as courses_v1,
    health as health_v1,
    integrations as integrations_v1,
    leads as leads_v1,
    messages as messages_v1,
    messaging_ws as messaging_ws_v1,
    notifications as notifications_v1,
    payment_requests as payment_requests_v1,
    plans as plans_v1,
    prometheus as prometheus_v1,
    sequences as sequences_v1,
    subscriptions as subscriptions_v1,
    transactions as transactions_v1,
)
from .services.messaging.connection_manager import connection_manager

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Coaching platform backend: billing, courses, content, leads, communities and messaging."


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info("%s API starting up (environment=%s)", BRAND_NAME, settings.environment)

    connection_manager.bind_loop(asyncio.get_running_loop())
    background: List[asyncio.Task[None]] = [
        asyncio.create_task(connection_manager.run_cleanup_loop(), name="ws-cleanup"),
    ]

    try:
        if await connect_broadcast():
            background.append(asyncio.create_task(connection_manager.listen_fanout(), name="ws-fanout"))
    except Exception as e:
        # Gateway keeps working with local delivery only
        logger.error("[BROADCAST] Failed to initialize broadcaster: %s", e)

    yield

    logger.info("%s API shutting down...", BRAND_NAME)
    for task in background:
        task.cancel()
    for task in background:
        with contextlib.suppress(asyncio.CancelledError):
            await task

    if is_broadcast_initialized():
        try:
            await disconnect_broadcast()
        except Exception as e:
            logger.error("[BROADCAST] Error disconnecting broadcaster: %s", e)


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
    generate_unique_id_function=_unique_operation_id,
)

# Register unified error envelope handlers
register_error_handlers(app)

register_default_handlers(event_bus)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Process-Time"],
)
logger.info("CORS allow_origins=%s", settings.cors_origins)
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(TimingMiddlewareASGI)

api_v1 = APIRouter(prefix="/api/v1")

api_v1.include_router(health_v1.router, prefix="/health")
api_v1.include_router(auth_v1.router, prefix="/auth")
api_v1.include_router(coaches_v1.router, prefix="/admin/coaches")
api_v1.include_router(clients_v1.router, prefix="/clients")
# Billing
api_v1.include_router(plans_v1.router, prefix="/plans")
api_v1.include_router(subscriptions_v1.router, prefix="/subscriptions")
api_v1.include_router(transactions_v1.router, prefix="/transactions")
api_v1.include_router(payment_requests_v1.router, prefix="/payment-requests")
# Learning and marketing
api_v1.include_router(courses_v1.router, prefix="/courses")
api_v1.include_router(content_v1.router, prefix="/content")
api_v1.include_router(leads_v1.router, prefix="/leads")
api_v1.include_router(sequences_v1.router, prefix="/sequences")
api_v1.include_router(communities_v1.router, prefix="/communities")
# Messaging
api_v1.include_router(conversations_v1.router, prefix="/conversations")
api_v1.include_router(messages_v1.router, prefix="/messages")
api_v1.include_router(messaging_ws_v1.router)
api_v1.include_router(notifications_v1.router, prefix="/notifications")
api_v1.include_router(integrations_v1.router, prefix="/integrations")
api_v1.include_router(analytics_v1.router, prefix="/analytics")

app.include_router(api_v1)
app.include_router(prometheus_v1.router, prefix="/metrics")


@app.get("/", include_in_schema=False)
def root() -> dict[str, str]:
    return {"message": f"Welcome to the {BRAND_NAME} API", "version": API_VERSION, "docs": "/docs"}
