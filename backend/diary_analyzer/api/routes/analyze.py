"""
Diary analysis endpoint
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from diary_analyzer.api.dependencies import get_context
from diary_analyzer.core.app_context import AnalyzerContext
from diary_analyzer.services.analysis_pipeline import AnalysisPipeline

router = APIRouter(prefix="/api", tags=["analysis"])

_REQUEST_BODY_SCHEMA = {
    "requestBody": {
        "required": True,
        "content": {
            "application/json": {
                "schema": {
                    "type": "object",
                    "required": ["diaries"],
                    "properties": {
                        "diaries": {"type": "array", "minItems": 1, "items": {"type": "object"}},
                        "memories": {"type": "array"},
                        "options": {
                            "type": "object",
                            "properties": {
                                "daily_text": {"type": "boolean", "default": True},
                                "mood_sentences": {"type": "boolean", "default": True},
                                "memories": {"type": "boolean", "default": True},
                            },
                        },
                    },
                },
                "example": {
                    "diaries": [{"id": "1", "diary": "Went for a long walk.", "emotion": "calm", "date": "2024-01-01"}],
                    "memories": [],
                    "options": {"daily_text": True, "mood_sentences": True, "memories": True},
                },
            }
        },
    }
}


@router.post("/analyze", openapi_extra=_REQUEST_BODY_SCHEMA)
async def analyze_diaries(request: Request, context: AnalyzerContext = Depends(get_context)):
    """
    Analyze diary entries

    Always answers with the envelope {success, data} or {success, error: {message, code}}.
    """
    raw_body = await request.body()
    status_code, envelope = await AnalysisPipeline(context).run(raw_body)
    return JSONResponse(status_code=status_code, content=envelope)
