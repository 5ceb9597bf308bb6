import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

# Load env from the project .env before settings are read
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from promptlib.core.config import Settings, settings, validate_config
from promptlib.core.database import create_all_tables, create_db_engine, create_session_factory, get_database_url
from promptlib.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from promptlib.core.logging import configure_logging
from promptlib.core.middleware.request_id import RequestIdMiddleware
from promptlib.api import (
    admin,
    articles,
    billing,
    custom_prompts,
    favorites,
    folders,
    health,
    me,
    prompts,
    search_history,
    transfer,
    usage,
)
from promptlib.features.billing.service import build_provider
from promptlib.features.catalog.filters import configure_collation

_UNSET = object()


def create_app(settings_obj: Optional[Settings] = None, billing_provider=_UNSET) -> FastAPI:
    """
    Build the application.

    Args:
        settings_obj: configuration; defaults to the process settings
        billing_provider: provider instance to use instead of building one
            from configuration (None disables billing)
    """
    cfg = settings_obj or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(cfg.ENV)
        logger = logging.getLogger("promptlib")
        validate_config(strict=cfg.CONFIG_STRICT, settings_obj=cfg, logger=logger)
        configure_collation(cfg.SORT_LOCALE)

        engine = create_db_engine(get_database_url(cfg))
        create_all_tables(engine)
        app.state.settings = cfg
        app.state.engine = engine
        app.state.session_factory = create_session_factory(engine)
        app.state.billing_provider = build_provider(cfg) if billing_provider is _UNSET else billing_provider
        logger.info("Starting promptlib backend...", extra={"billing_enabled": app.state.billing_provider is not None})
        try:
            yield
        finally:
            engine.dispose()
            logging.getLogger("promptlib").info("Stopping promptlib backend...")

    app = FastAPI(title="promptlib", lifespan=lifespan)

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(me.router)
    app.include_router(prompts.router)
    app.include_router(usage.router)
    app.include_router(search_history.router)
    app.include_router(favorites.router)
    app.include_router(folders.router)
    app.include_router(custom_prompts.router)
    app.include_router(articles.router)
    app.include_router(transfer.router)
    app.include_router(billing.router)
    app.include_router(admin.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("promptlib.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")), reload=settings.ENV == "development")
