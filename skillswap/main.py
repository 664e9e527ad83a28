"""
SkillSwap Marketplace

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from skillswap.api.middleware.rate_limit import RateLimitMiddleware
from skillswap.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from skillswap.api.v1 import router as api_v1_router
from skillswap.config import Settings, get_settings
from skillswap.database import close_db, init_db, ping_database
from skillswap.logging_config import configure_logging, get_logger
from skillswap.schemas.common import ErrorResponse, HealthResponse, ValidationErrorResponse

logger = get_logger(__name__)

DESCRIPTION = """
Users trade skills for skills, or skills for money.

- **Skills**: publish and browse skill listings
- **Exchanges**: propose, negotiate terms, accept from both sides
- **Negotiation**: role-gated term editing; any edit withdraws prior agreement
- **Deliverables**: each side completes its own, the other side confirms
- **Disputes**: contest a deliverable; admins resolve

Authentication is delegated to the identity provider. Requests carry its
access token in the session cookie or an Authorization header.
"""


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )
    logger.info(
        "Starting %s v%s",
        settings.project_name,
        settings.version,
        extra={"environment": settings.environment},
    )
    await init_db()

    yield

    await close_db()
    logger.info("Shutdown complete")


def _error_headers(request: Request, origins: List[str]) -> Dict[str, str]:
    """
    Headers for handler-built error responses.

    Unhandled errors are answered outside the CORS middleware, so the
    browser would otherwise see an opaque failure instead of the body.
    """
    origin = request.headers.get("origin")
    headers = {
        "Access-Control-Allow-Origin": origin if origin in origins else (origins[0] if origins else "*"),
        "Access-Control-Allow-Credentials": "true",
    }
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        headers[REQUEST_ID_HEADER] = request_id
    return headers


def _register_error_handlers(app: FastAPI, settings: Settings) -> None:
    origins = list(settings.cors_origins)

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        body = ErrorResponse(
            detail=str(exc.detail),
            request_id=getattr(request.state, "request_id", None),
        )
        headers = _error_headers(request, origins)
        headers.update(exc.headers or {})
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(exclude_none=True),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        body = ValidationErrorResponse(
            detail="Validation error",
            request_id=getattr(request.state, "request_id", None),
            errors=[
                {
                    "field": ".".join(str(part) for part in err["loc"]),
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in exc.errors()
            ],
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=body.model_dump(exclude_none=True),
            headers=_error_headers(request, origins),
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
        body = ErrorResponse(
            detail=f"{type(exc).__name__}: {exc}" if settings.debug else "Internal server error",
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(exclude_none=True),
            headers=_error_headers(request, origins),
        )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.project_name,
        description=DESCRIPTION,
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Last added runs first: CORS wraps everything, including 429s
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
    )

    _register_error_handlers(app, settings)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        reachable = await ping_database()
        return HealthResponse(
            status="ok" if reachable else "degraded",
            version=settings.version,
            environment=settings.environment,
            database="connected" if reachable else "unavailable",
        )

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "name": settings.project_name,
            "version": settings.version,
            "api": settings.api_v1_prefix,
        }

    app.include_router(api_v1_router, prefix=settings.api_v1_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("skillswap.main:app", host="0.0.0.0", port=8000, reload=_settings.debug)
