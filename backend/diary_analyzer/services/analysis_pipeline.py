"""
Diary analysis pipeline: validate -> build prompt -> generate -> parse, with every failure normalized
"""
import time
from typing import Any, Dict, Tuple

from diary_analyzer.components.contracts import ResponseEnvelope
from diary_analyzer.components.error_normalizer import normalize_error
from diary_analyzer.components.prompt_builder import build_prompt
from diary_analyzer.components.request_validator import parse_json_body, validate_analysis_request
from diary_analyzer.components.response_normalizer import parse_model_output
from diary_analyzer.core.app_context import AnalyzerContext
from diary_analyzer.core.errors import AnalyzerError, ValidationError
from diary_analyzer.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


class AnalysisPipeline:
    """Runs one /api/analyze request end to end"""

    def __init__(self, context: AnalyzerContext):
        self.context = context

    async def analyze(self, body: Any) -> Any:
        """
        Body may be already decoded JSON or the raw request bytes.
        Raises AnalyzerError subclasses on failure.
        """
        if isinstance(body, (bytes, str)):
            body = parse_json_body(body)
        request = validate_analysis_request(body)
        payload = build_prompt(self.context.base_prompt, request)
        logger.info(
            "Analyzing diaries",
            extra={
                "diary_count": len(request.diaries),
                "memory_count": len(request.memories or []),
                "options": request.options.model_dump(),
                "prompt_chars": len(payload.as_text()),
            }
        )
        text = await self.context.client.generate_content(payload.segments)
        return parse_model_output(text, request.options)

    async def run(self, body: Any) -> Tuple[int, Dict[str, Any]]:
        """Never raises: returns (status_code, envelope)"""
        start_time = time.monotonic()
        try:
            data = await self.analyze(body)
        except ValidationError as e:
            logger.info("Rejected analysis request", extra={"reason": e.message})
            return normalize_error(e)
        except AnalyzerError as e:
            logger.error(
                "Analysis failed",
                extra={"error": e.message, "status_code": e.status_code}
            )
            return normalize_error(e)
        except Exception as e:
            logger.error("Unexpected analysis failure", exc_info=True)
            return normalize_error(e)

        logger.info(
            "Analysis completed",
            extra={"duration_ms": int((time.monotonic() - start_time) * 1000)}
        )
        return 200, ResponseEnvelope.ok(data).to_dict()
