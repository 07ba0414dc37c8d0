"""
Slug Registry API - FastAPI backend for profile slugs
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from slugregistry import __version__
from slugregistry.application.alias_resolver import AliasResolver
from slugregistry.application.profile_service import ProfileService
from slugregistry.application.registries.slug_registry import SlugRegistry
from slugregistry.config.settings import Settings, configure_logging, load_settings
from slugregistry.core.errors import (
    DuplicateProfileError,
    InvalidSlugError,
    ReservedSlugError,
    SlugConflictError,
    SlugRegistryError,
    StoreUnavailableError,
)
from slugregistry.infrastructure.stores.profile_store import SqlAlchemyProfileStore
from slugregistry.infrastructure.stores.sqlalchemy_db import create_db_engine

from .routes import profiles

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (InvalidSlugError, 400),
    (ReservedSlugError, 422),
    (SlugConflictError, 409),
    (DuplicateProfileError, 409),
    (StoreUnavailableError, 503),
)


def _status_for(exc: SlugRegistryError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def build_state(app: FastAPI, settings: Settings) -> None:
    engine = create_db_engine(settings.database.url, timeout=settings.database.timeout, echo=settings.database.echo)
    # create missing tables only; an existing un-migrated profiles table is left to the registry
    profile_store = SqlAlchemyProfileStore(settings.database.url, engine=engine)
    registry = SlugRegistry.from_settings(settings, engine=engine)
    app.state.engine = engine
    app.state.slug_registry = registry
    app.state.profile_service = ProfileService(profile_store, registry, AliasResolver(registry.router))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    app = FastAPI(
        title="Slug Registry API",
        description="Unique public profile slugs with rename aliases and schema fallback",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "version": __version__}

    @app.exception_handler(SlugRegistryError)
    async def _slug_registry_error(request: Request, exc: SlugRegistryError):
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error("request %s %s failed: %s", request.method, request.url.path, exc)
        if isinstance(exc, SlugConflictError):
            return JSONResponse(status_code=status_code, content={"error": "public_slug conflict", "code": exc.code})
        body = {"error": exc.message, "code": exc.code}
        if isinstance(exc, InvalidSlugError):
            body["available"] = False
        return JSONResponse(status_code=status_code, content=body)

    app.include_router(profiles.router, prefix="/api", tags=["Profiles"])

    @app.on_event("startup")
    async def _startup_registry():
        resolved = settings or load_settings()
        configure_logging(resolved)
        build_state(app, resolved)
        logger.info(
            "slug registry ready (primary_ready=%s)",
            app.state.slug_registry.router.detector.primary_ready(),
        )

    @app.on_event("shutdown")
    async def _shutdown_registry():
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            engine.dispose()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
