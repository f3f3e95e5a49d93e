"""
Model output parsing and shape checks
"""
import json
from typing import Any

from diary_analyzer.components.contracts import OutputOptions
from diary_analyzer.components.request_validator import loads_strict
from diary_analyzer.core.errors import MalformedResponseError
from diary_analyzer.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

# option flag -> (expected field, expected type, type label)
EXPECTED_FIELDS = {
    "daily_text": ("daily_text", str, "a string"),
    "mood_sentences": ("mood_sentences", dict, "an object"),
    "memories": ("final_memories", list, "an array"),
}


def _malformed_message(error: Exception) -> str:
    base = "The model returned a response that is not valid JSON"
    if isinstance(error, json.JSONDecodeError):
        return f"{base} ({error.msg} at position {error.pos})"
    if isinstance(error, ValueError):
        return f"{base} ({error})"
    return base


def parse_model_output(text: str, options: OutputOptions) -> Any:
    """
    Parse the model's text as JSON and warn about missing fields

    Raises:
        MalformedResponseError: text is not valid JSON, NaN and Infinity included (raw text attached)
    """
    try:
        data = loads_strict(text)
    except (ValueError, TypeError) as e:
        logger.error(
            "Model returned invalid JSON",
            extra={"parse_error": str(e), "raw_response": text}
        )
        raise MalformedResponseError(
            _malformed_message(e),
            raw_text=text if isinstance(text, str) else "",
        ) from e

    check_expected_fields(data, options)
    return data


def check_expected_fields(data: Any, options: OutputOptions) -> None:
    """Log a warning for each enabled option whose field is absent or mistyped. Never raises."""
    if not isinstance(data, dict):
        logger.warning("Model response is not a JSON object", extra={"response_type": type(data).__name__})
        return

    for flag, (field, expected_type, label) in EXPECTED_FIELDS.items():
        if not getattr(options, flag):
            continue
        value = data.get(field)
        if not isinstance(value, expected_type):
            logger.warning(
                f"Expected '{field}' to be {label} in model response",
                extra={"field": field, "present": field in data}
            )
