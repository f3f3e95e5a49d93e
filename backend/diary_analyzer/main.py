"""
Main FastAPI application entry point
"""
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from diary_analyzer import __version__
from diary_analyzer.api.routes import analyze, chat, health
from diary_analyzer.components.error_normalizer import normalize_error
from diary_analyzer.core.app_context import AnalyzerContext, build_context
from diary_analyzer.core.config import Settings, get_settings
from diary_analyzer.core.errors import AnalyzerError, ConfigurationError, ValidationError
from diary_analyzer.core.logging_config import LoggingConfig
from diary_analyzer.core.middleware import LoggingContextMiddleware

logger = LoggingConfig.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for FastAPI app"""
    settings = app.state.context.settings
    logger.info(
        f"Starting {settings.app_name} in {settings.app_env} mode",
        extra={"model": settings.gemini_model}
    )
    yield
    logger.info(f"Shutting down {settings.app_name}...")


def _envelope_response(error: BaseException) -> JSONResponse:
    status_code, envelope = normalize_error(error)
    return JSONResponse(status_code=status_code, content=envelope)


async def analyzer_error_handler(request: Request, exc: AnalyzerError):
    return _envelope_response(exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _envelope_response(AnalyzerError(str(exc.detail), status_code=exc.status_code))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _envelope_response(ValidationError(message))


async def unhandled_exception_handler(request: Request, exc: Exception):
    """Last resort: log everything, tell the caller only the envelope"""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method}
    )
    return _envelope_response(exc)


def create_app(context: Optional[AnalyzerContext] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application

    Raises:
        ConfigurationError: when no context is given and the settings or prompt file are unusable
    """
    if context is None:
        context = build_context(settings)
    settings = context.settings

    LoggingConfig.configure(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Journal analysis proxy for the Gemini API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(LoggingContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials="*" not in settings.allowed_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AnalyzerError, analyzer_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health.router)
    app.include_router(analyze.router)
    app.include_router(chat.router)

    return app


def run():
    """Console entry point: fail fast on bad configuration, then serve"""
    import uvicorn

    LoggingConfig.configure()
    try:
        settings = get_settings()
        LoggingConfig.configure(settings, force=True)
        app = create_app(settings=settings)
    except ConfigurationError as e:
        logger.critical(f"Refusing to start: {e.message}")
        sys.exit(1)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
