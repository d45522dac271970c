"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from rights_review.api.auth import login_redirect
from rights_review.api.auth import router as auth_router
from rights_review.api.auth import user_router
from rights_review.api.messages import router as messages_router
from rights_review.api.rights_requests import router as rights_requests_router
from rights_review.app_logging import configure_logging
from rights_review.config import parse_csv
from rights_review.containers import AppContainer
from rights_review.domain.errors import LoginRequiredError, RightsReviewError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)
    settings = container.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(parse_csv(settings.cors_allowed_origins)),
        allow_origin_regex=settings.cors_allowed_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
        max_age=600,
    )

    @app.exception_handler(LoginRequiredError)
    async def handle_login_required(
        request: Request, exc: LoginRequiredError
    ) -> Response:
        return login_redirect(request, exc.original_url)

    @app.exception_handler(RightsReviewError)
    async def handle_domain_error(
        request: Request, exc: RightsReviewError
    ) -> JSONResponse:
        body: dict[str, object] = {"success": False, "error": exc.error}
        if exc.status_code >= 500:
            logger.error(
                "%s %s failed: %s",
                request.method,
                request.url.path,
                exc,
                extra={"status_code": exc.status_code},
            )
            if exc.message and settings.environment == "local":
                body["message"] = exc.message
        elif exc.message:
            body["message"] = exc.message
        debug = getattr(exc, "debug", None)
        if debug is not None:
            body["debug"] = debug
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            {
                "success": False,
                "error": "Invalid request body",
                "message": _describe_validation_errors(exc),
            },
            status_code=400,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body: dict[str, object] = {"success": False, "error": "Internal server error"}
        if settings.environment == "local":
            body["message"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(body, status_code=500)

    app.include_router(auth_router)
    app.include_router(user_router)
    app.include_router(rights_requests_router)
    app.include_router(messages_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _describe_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)
