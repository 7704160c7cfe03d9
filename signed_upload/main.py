import os
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .logging import setup_logging, RequestIdMiddleware
from .routes.uploads import router as uploads_router
from .services.uploads import UploadFailure


logger = structlog.get_logger(__name__)


async def _upload_failure_handler(request: Request, exc: UploadFailure):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    missing = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    detail = f"Invalid request: {', '.join(missing)}" if missing else "Invalid request"
    return JSONResponse(status_code=422, content={"error": detail})


async def _unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    setup_logging()
    override = settings is not None
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name)
    if override:
        app.dependency_overrides[get_settings] = lambda: settings

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Error contract: every failure is rendered as {"error": ...}
    app.add_exception_handler(UploadFailure, _upload_failure_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    # Routers
    app.include_router(uploads_router)

    @app.get("/", response_class=PlainTextResponse)
    def index():
        return "Hello World"

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Local development backend serves its files back
    if settings.storage_provider == "local":
        os.makedirs(settings.local_storage_dir, exist_ok=True)
        app.mount("/files", StaticFiles(directory=settings.local_storage_dir), name="files")

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        logger.info(
            "startup",
            app=settings.app_name,
            environment=settings.environment,
            storage_provider=settings.storage_provider,
            port=settings.port,
        )

    return app
