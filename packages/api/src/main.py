# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .core.errors import (
    ActorAuthError,
    ActorValidationError,
    FieldIssue,
    TabConfigurationError,
)
from .routes import actors, health, policies
from .schemas.error import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup/shutdown lifecycle."""
    from .services.storage import init_storage_service

    init_storage_service(settings)
    yield


app = FastAPI(
    title="Rental Guarantee Policy API",
    description="Policies, actor self-service forms and document collection for rental guarantees",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

_HTTP_STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    413: "Payload Too Large",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", str(uuid.uuid4()))


def _build_error(
    status_code: int,
    detail: str,
    request_id: str,
    errors: list[FieldIssue] | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        type="about:blank",
        title=_HTTP_STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request_id=request_id,
        errors=errors,
    )


def _problem(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    body = _build_error(exc.status_code, str(exc.detail), _request_id(request))
    return _problem(exc.status_code, body)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details."""
    issues = [
        FieldIssue(path=".".join(str(part) for part in err["loc"]), message=err["msg"])
        for err in exc.errors()
    ]
    body = _build_error(422, "Request validation failed", _request_id(request), issues)
    return _problem(422, body)


@app.exception_handler(ActorAuthError)
async def actor_auth_exception_handler(request: Request, exc: ActorAuthError):
    body = _build_error(exc.status_code, str(exc), _request_id(request))
    return _problem(exc.status_code, body)


@app.exception_handler(ActorValidationError)
async def actor_validation_exception_handler(request: Request, exc: ActorValidationError):
    """Tab-schema and whitelist rejections carry one issue per field."""
    body = _build_error(400, str(exc), _request_id(request), exc.issues)
    return _problem(400, body)


@app.exception_handler(TabConfigurationError)
async def tab_configuration_exception_handler(request: Request, exc: TabConfigurationError):
    body = _build_error(400, str(exc), _request_id(request))
    return _problem(400, body)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    request_id = _request_id(request)
    logger.exception("Unhandled exception (request_id=%s)", request_id)
    body = _build_error(500, "An unexpected error occurred.", request_id)
    return _problem(500, body)


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(policies.router, prefix="/api/policies", tags=["policies"])
app.include_router(actors.router, prefix="/api/actors", tags=["actors"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Welcome to the Rental Guarantee Policy API"}
