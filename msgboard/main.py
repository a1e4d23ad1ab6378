from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from fastapi.staticfiles import StaticFiles

from .core.config import Settings, get_settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .repositories.message_store import MessageStore
from .routes import health, messages, push
from .services.message_service import MessageService
from .services.messaging.delivery import DeliveryCoordinator
from .services.messaging.registry import SubscriberRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    settings: Settings = app.state.settings
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(
        "Environment: %s, delivery mode: %s, long-poll timeout: %ss",
        settings.environment,
        settings.delivery_mode,
        settings.long_poll_timeout_seconds,
    )
    logger.info("Messages are kept in memory only and are lost on restart")

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")
    closed = app.state.subscriber_registry.close_all()
    logger.info("Released %d subscribers", closed)


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application with a fresh, empty board.

    Each call wires its own store, registry and delivery coordinator onto
    ``app.state``; nothing is shared between app instances.
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level)

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
        generate_unique_id_function=_unique_operation_id,
    )

    store = MessageStore()
    registry = SubscriberRegistry(
        long_poll_timeout=settings.long_poll_timeout_seconds,
        push_queue_size=settings.push_queue_size,
    )
    coordinator = DeliveryCoordinator(registry)
    app.state.settings = settings
    app.state.message_store = store
    app.state.subscriber_registry = registry
    app.state.message_service = MessageService(
        store,
        registry,
        coordinator,
        max_message_length=settings.max_message_length,
        delivery_mode=settings.delivery_mode,
    )

    register_error_handlers(app)

    # Browser frontends are served from another origin; no cookies are involved.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "HEAD", "OPTIONS", "POST"],
        allow_headers=["*"],
    )
    logger.info("CORS allow_origins=%s", settings.cors_allow_origins)

    app.include_router(messages.router)
    app.include_router(push.router)
    app.include_router(health.router)

    # Mounted last so API routes take precedence over files.
    if settings.static_dir:
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
        logger.info("Serving static files from %s", settings.static_dir)

    return app


app = create_app()
