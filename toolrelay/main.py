import logging
import time
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolrelay.config import Settings, settings
from toolrelay.core.task_registry import TaskRegistry
from toolrelay.core.transport_registry import TransportRegistry
from toolrelay.routers import health, messages, sse
from toolrelay.services.dispatcher import Dispatcher
from toolrelay.services.tools import ToolRegistry, load_builtin_tools

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    app_settings: Optional[Settings] = None,
    tools: Optional[ToolRegistry] = None,
) -> FastAPI:
    """Build the relay app. Each app owns its own session and task tables."""
    app_settings = app_settings or settings
    if tools is None:
        tools = load_builtin_tools()

    app = FastAPI(
        title=app_settings.server_name,
        description="Remote tool invocation over an SSE push channel and a POST request channel",
        version=app_settings.server_version,
    )

    app.state.settings = app_settings
    app.state.transports = TransportRegistry()
    app.state.tasks = TaskRegistry()
    app.state.dispatcher = Dispatcher(tools, app_settings)
    app.state.started_at = time.monotonic()

    logger.info(f"{app_settings.server_name} {app_settings.server_version}: {len(tools)} tools registered")
    logger.info(f"CORS allowed origins: {app_settings.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(sse.router, tags=["transport"])
    app.include_router(messages.router, tags=["transport"])
    app.include_router(health.router, tags=["health"])

    @app.on_event("shutdown")
    async def shutdown_event():
        """Close every push channel, then cancel in-flight dispatches."""
        app.state.transports.close_all()
        await app.state.tasks.cancel_all(timeout=app_settings.shutdown_timeout)

    return app


app = create_app()
