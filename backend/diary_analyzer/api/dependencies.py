"""
FastAPI dependencies
"""
from fastapi import Request

from diary_analyzer.core.app_context import AnalyzerContext


def get_context(request: Request) -> AnalyzerContext:
    """Context built at startup and stored on app.state"""
    return request.app.state.context
