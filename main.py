import inspect
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from routes.history_route import router as history_router
from routes.models_route import router as models_router
from routes.turn_route import router as turn_router
from services.chat.response_cache import ResponseCache
from services.chat.turn_handler import TurnHandler
from services.credentials import get_provider_settings
from services.openai.model_gateway import ModelGateway
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import ServiceSettings

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
LOGGER = logging.getLogger(__name__)


async def _close_clients(gateway: ModelGateway) -> None:
    """Close every OpenAI client the gateway opened, ignoring shutdown errors."""
    for client in gateway.open_clients():
        aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
        if aclose is None:
            continue
        try:
            if inspect.iscoroutinefunction(aclose):
                await aclose()
            else:
                result = aclose()
                if inspect.isawaitable(result):
                    await result
        except Exception as exc:
            LOGGER.warning("Failed to close model client: %s", exc)


def create_app(
    settings: Optional[ServiceSettings] = None,
    gateway: Optional[ModelGateway] = None,
    cache: Optional[ResponseCache] = None,
    db_initializer: Optional[AsyncDatabaseInitializer] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Collaborators not passed in are built from the environment when the
    application starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - the service settings
          - the process-wide response cache
          - the model gateway and turn handler
          - the chat history database, when DATABASE_DIR is configured
        and attach them to `app.state`.
        """
        app_settings = settings or ServiceSettings.from_env()
        app.state.settings = app_settings

        response_cache = cache or ResponseCache(
            ttl_seconds=app_settings.cache_ttl_seconds,
            max_entries=app_settings.cache_max_entries,
        )
        model_gateway = gateway or ModelGateway(timeout_seconds=app_settings.provider_timeout_seconds)
        app.state.response_cache = response_cache
        app.state.model_gateway = model_gateway
        app.state.turn_handler = TurnHandler(
            response_cache,
            model_gateway,
            provider_name=app_settings.provider_name,
            default_model=app_settings.default_model,
        )

        database = db_initializer
        if database is None and app_settings.database_dir:
            database = AsyncDatabaseInitializer(app_settings.database_dir)
        if database is not None:
            await database.ensure_database()
        else:
            LOGGER.warning("DATABASE_DIR is not set; chat history endpoints are disabled")
        app.state.db_initializer = database

        if not get_provider_settings().get(app_settings.provider_name, {}).get("enabled"):
            LOGGER.warning("No API key configured for provider %s", app_settings.provider_name)

        try:
            yield
        finally:
            await _close_clients(model_gateway)

    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting storage and provider credential presence.
        """
        settings_ = request.app.state.settings
        has_db = getattr(request.app.state, "db_initializer", None) is not None
        provider_ready = get_provider_settings().get(settings_.provider_name, {}).get("enabled", False)
        return {"ok": True, "db_initialized": has_db, "provider_available": provider_ready}

    # Register application routers
    app.include_router(turn_router)
    app.include_router(models_router)
    app.include_router(history_router)

    return app


app = create_app()
