"""FastAPI application factory and global exception handling."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from casedeck import __version__ as app_version
from casedeck.api.routes import router
from casedeck.config import get_settings
from casedeck.slides.errors import INPUT_ERRORS, UPSTREAM_ERRORS, CaseDeckError
from casedeck.templates.loader import get_template_registry

logger = logging.getLogger(__name__)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    app = FastAPI(
        title=settings.app_name,
        description="Turns legal case descriptions into validated slide decks.",
        version=app_version,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "details": exc.errors()},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, dict) and "error" in detail:
            payload = detail
        elif detail == "There was an error parsing the body":
            payload = {"error": "invalid_json", "details": detail}
        else:
            payload = {"error": "http_error", "details": detail}
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(CaseDeckError)
    async def casedeck_exception_handler(
        request: Request, exc: CaseDeckError
    ) -> JSONResponse:
        if isinstance(exc, INPUT_ERRORS):
            logger.info(f"{request.url.path} rejected: {exc.kind}")
        elif isinstance(exc, UPSTREAM_ERRORS):
            logger.warning(f"{request.url.path} upstream failure: {exc.kind}: {exc.message}")
        else:
            logger.error(f"{request.url.path} failed: {exc.kind}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.get("/healthz", tags=["health"])
    async def healthz() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": app_version,
            "provider": settings.llm_provider,
            "templates": get_template_registry(
                settings.templates_dir
            ).get_available_types(),
            "max_payload_bytes": settings.max_payload_bytes,
        }

    app.include_router(router)
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
