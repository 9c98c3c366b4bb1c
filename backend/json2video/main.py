import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from json2video.api import videos
from json2video.celery_app import create_celery_app
from json2video.config import Settings, get_settings
from json2video.exceptions import Json2VideoError
from json2video.scheduling import JobEventLog, JobScheduler, RetryPolicy
from json2video.services.acquisition_service import SourceAcquirer
from json2video.services.intake_service import VideoIntake
from json2video.services.validation_service import RequestValidator
from json2video.utils.filenames import ensure_directory_exists

logger = logging.getLogger(__name__)


def _build_scheduler(settings: Settings) -> JobScheduler:
    return JobScheduler(
        create_celery_app(settings),
        policy=RetryPolicy.from_settings(settings),
        events=JobEventLog(
            completed_limit=settings.recent_completed_limit,
            failed_limit=settings.recent_failed_limit,
        ),
    )


def _describe_request_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid input data"
    first_error = errors[0]
    loc = ".".join(str(x) for x in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")
    return f"Invalid input data: {loc}: {msg}" if loc else f"Invalid input data: {msg}"


def create_app(
    settings: Settings | None = None,
    scheduler: JobScheduler | None = None,
    acquirer: SourceAcquirer | None = None,
) -> FastAPI:
    """Build the API application.

    ``scheduler`` and ``acquirer`` default to instances built from
    ``settings``; tests pass doubles instead.
    """
    settings = settings or get_settings()
    scheduler = scheduler or _build_scheduler(settings)
    acquirer = acquirer or SourceAcquirer.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        logging.basicConfig(level=settings.log_level.upper())
        logger.info(f"Environment: {settings.environment}")
        logger.info(f"Cache directory: {settings.cache_dir}")
        logger.info(f"Movies directory: {settings.movies_dir}")
        yield
        # Shutdown
        logger.info("Shutting down")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.scheduler = scheduler
    app.state.intake = VideoIntake(
        validator=RequestValidator(settings.allowed_hosts),
        acquirer=acquirer,
        scheduler=scheduler,
        settings=settings,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        client = request.client.host if request.client else "-"
        logger.info(f"{request.method} {request.url.path} - {client}")
        return await call_next(request)

    @app.exception_handler(Json2VideoError)
    async def json2video_exception_handler(request: Request, exc: Json2VideoError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.code}: {exc.message}")
        else:
            logger.warning(f"{exc.code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _describe_request_error(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"error": "Endpoint not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    # Global exception handler to ensure errors return proper JSON
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # Routers
    app.include_router(videos.router, tags=["videos"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "version": settings.app_version}

    # Rendered artifacts, served as /<public_url_prefix>/<api_key>/<filename>
    ensure_directory_exists(settings.cache_dir)
    movies_dir = ensure_directory_exists(settings.movies_dir)
    app.mount(
        f"/{settings.public_url_prefix.strip('/')}",
        StaticFiles(directory=movies_dir),
        name="movies",
    )

    return app
