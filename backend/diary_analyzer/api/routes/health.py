"""
Health check and service info endpoints
"""
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from diary_analyzer import __version__
from diary_analyzer.api.dependencies import get_context
from diary_analyzer.core.app_context import AnalyzerContext

router = APIRouter(tags=["health"])


@router.get("/health", response_class=PlainTextResponse)
async def health_check():
    """Liveness probe"""
    return "OK"


@router.get("/api")
async def service_info(context: AnalyzerContext = Depends(get_context)):
    """Root API endpoint"""
    settings = context.settings
    return {
        "name": settings.app_name,
        "version": __version__,
        "status": "running",
        "environment": settings.app_env,
        "model": settings.gemini_model,
    }
