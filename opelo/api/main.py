import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from opelo.api.characters import router as characters_router
from opelo.api.proxy      import router as proxy_router
from opelo.api.roster     import router as roster_router
from opelo.config import configure_logging, get_settings
from opelo.errors import NotFoundError, StorageError, UpstreamFetchError, ValidationError
from opelo.storage import Storage

logger = logging.getLogger(__name__)


def create_app(storage: Optional[Storage] = None) -> FastAPI:
    """
    Build the API. The storage handle is opened on startup and closed on
    shutdown, which uvicorn also runs on SIGINT/SIGTERM.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        handle = storage or Storage(settings.database_url, echo=settings.db_echo)
        app.state.storage = handle.open()
        try:
            yield
        finally:
            handle.close()

    app = FastAPI(title="One Piece Elo API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    # mount routers
    app.include_router(characters_router)
    app.include_router(roster_router)
    app.include_router(proxy_router)

    @app.get("/")
    def root():
        return {"message": "API is running"}

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.error("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=400, content={
            "error": "Invalid input",
            "message": exc.message,
            "missing_fields": exc.missing,
            "invalid_fields": exc.unexpected,
            "non_numeric_fields": exc.non_numeric,
        })

    @app.exception_handler(RequestValidationError)
    async def request_body_error_handler(request: Request, exc: RequestValidationError):
        body_errors = [e for e in exc.errors() if e["loc"] and e["loc"][0] == "body"]
        if not body_errors:
            return await request_validation_exception_handler(request, exc)
        return await validation_error_handler(
            request, ValidationError(f"Malformed request body: {body_errors[0]['msg']}"))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        logger.error("%s", exc)
        return JSONResponse(status_code=404, content={
            "error": "Character not found",
            "message": str(exc),
        })

    @app.exception_handler(UpstreamFetchError)
    async def upstream_error_handler(request: Request, exc: UpstreamFetchError):
        logger.error("Upstream fetch failed for %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={
            "error": "Failed to fetch from the wiki",
            "message": str(exc),
        })

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={
            "error": "Database error",
            "message": "The database operation failed",
        })

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            logger.error("404 - Route not found: %s %s", request.method, request.url.path)
            return JSONResponse(status_code=404, content={
                "error": "Route not found",
                "message": f"The requested route {request.method} {request.url.path} does not exist",
            })
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail},
                            headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={
            "error": "Internal server error",
            "message": "An unexpected error occurred",
        })

    return app


app = create_app()
