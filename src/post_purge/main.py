"""FastAPI application entrypoint."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from post_purge import __version__
from post_purge.api import api_router
from post_purge.api.dependencies import get_deletion_job_service, get_settings
from post_purge.domain.errors import AuthRequiredError
from post_purge.domain.models import ErrorResponse


def create_app() -> FastAPI:
    """Build FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Run the deletion service's background workers for the app lifetime."""

        provider = app.dependency_overrides.get(get_deletion_job_service, get_deletion_job_service)
        service = provider()
        await service.startup()
        try:
            yield
        finally:
            await service.shutdown()

    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=settings.session_cookie_name,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.session_https_only,
    )

    @app.exception_handler(AuthRequiredError)
    async def auth_required_handler(_: Request, exc: AuthRequiredError) -> JSONResponse:
        return JSONResponse(status_code=401, content=ErrorResponse(error=str(exc)).model_dump())

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()


def run() -> None:
    """Run local development server."""

    settings = get_settings()
    uvicorn.run(
        "post_purge.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        proxy_headers=True,
    )


__all__ = ["app", "create_app", "run"]
