"""
Free-form prompt passthrough
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from diary_analyzer.api.dependencies import get_context
from diary_analyzer.components.contracts import ResponseEnvelope
from diary_analyzer.components.error_normalizer import normalize_error
from diary_analyzer.components.request_validator import parse_json_body
from diary_analyzer.core.app_context import AnalyzerContext
from diary_analyzer.core.errors import AnalyzerError, ValidationError
from diary_analyzer.core.logging_config import LoggingConfig

router = APIRouter(prefix="/api", tags=["chat"])
logger = LoggingConfig.get_logger(__name__)


@router.post("/chat")
async def chat(request: Request, context: AnalyzerContext = Depends(get_context)):
    """
    Send a plain prompt to the model and return its text

    Body: {"prompt": "..."}
    """
    try:
        body = parse_json_body(await request.body())
        prompt = body.get("prompt") if isinstance(body, dict) else None
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("'prompt' is required")

        text = await context.client.generate_content(prompt, response_mime_type=None)
    except AnalyzerError as e:
        logger.warning("Chat request failed", extra={"error": e.message, "status_code": e.status_code})
        status_code, envelope = normalize_error(e)
        return JSONResponse(status_code=status_code, content=envelope)

    return JSONResponse(status_code=200, content=ResponseEnvelope.ok(text).to_dict())
