import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from layout_studio.config import configure_logging, settings
from layout_studio.db.base import init_db
from layout_studio.errors import (
    DocumentMismatchError,
    LayoutValidationError,
    NotFoundError,
    OwnershipError,
    PublishConsistencyError,
    ValidationIssue,
)
from layout_studio.routers import layouts, public_pages
from layout_studio.schemas.validation import issues_from_request_errors

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _app_lifespan(_app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    init_db()
    logger.info("Layout Studio API started", extra={"environment": settings.ENVIRONMENT})
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Layout Studio API",
        default_response_class=ORJSONResponse,
        lifespan=_app_lifespan,
    )

    allow_origins = sorted(set(settings.BACKEND_CORS_ORIGINS))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LayoutValidationError)
    async def layout_validation_error_handler(_request: Request, exc: LayoutValidationError) -> ORJSONResponse:
        logger.info("Layout validation failed", extra={"issue_count": len(exc.issues)})
        return ORJSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(_request: Request, exc: RequestValidationError) -> ORJSONResponse:
        issues: list[ValidationIssue] = issues_from_request_errors(exc.errors())
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=LayoutValidationError(issues).to_response(),
        )

    @app.exception_handler(DocumentMismatchError)
    async def document_mismatch_handler(_request: Request, exc: DocumentMismatchError) -> ORJSONResponse:
        logger.warning(
            "Layout page mismatch",
            extra={"expected_page_id": exc.expected_page_id, "layout_page_id": exc.layout_page_id},
        )
        return ORJSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_request: Request, exc: NotFoundError) -> ORJSONResponse:
        return ORJSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(OwnershipError)
    async def ownership_handler(_request: Request, exc: OwnershipError) -> ORJSONResponse:
        return ORJSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})

    @app.exception_handler(PublishConsistencyError)
    async def publish_consistency_handler(_request: Request, exc: PublishConsistencyError) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "blueprintId": exc.blueprint_id, "versionId": exc.version_id},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(_request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception("Unhandled server exception", exc_info=exc)
        return ORJSONResponse(status_code=500, content={"detail": "Internal server error."})

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    app.include_router(layouts.router)
    app.include_router(public_pages.router)

    return app


app = create_app()
