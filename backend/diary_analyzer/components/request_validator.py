"""
Request validation for /api/analyze
"""
import json
from typing import Any, Mapping, Union

from diary_analyzer.components.contracts import AnalysisRequest, OutputOptions
from diary_analyzer.core.errors import ValidationError

OPTION_FIELDS = ("daily_text", "mood_sentences", "memories")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def loads_strict(raw: Union[bytes, str]) -> Any:
    """json.loads that refuses NaN, Infinity and -Infinity"""
    return json.loads(raw, parse_constant=_reject_constant)


def parse_json_body(raw: Union[bytes, str]) -> Any:
    """Decode a raw request body; an empty or non-JSON body is a ValidationError"""
    if not raw or not raw.strip():
        raise ValidationError("Request body is required")
    try:
        return loads_strict(raw)
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e


def derive_options(raw_options: Any) -> OutputOptions:
    """Each flag is on unless the caller sent exactly false for it"""
    if not isinstance(raw_options, Mapping):
        raw_options = {}
    return OutputOptions(**{name: raw_options.get(name) is not False for name in OPTION_FIELDS})


def validate_analysis_request(body: Any) -> AnalysisRequest:
    """
    Check the request shape and derive the output options

    Raises:
        ValidationError: body is not an object, diaries is missing/empty/not a list,
            or memories is present but not a list
    """
    if not isinstance(body, Mapping):
        raise ValidationError("Request body must be a JSON object")

    diaries = body.get("diaries")
    if diaries is None:
        raise ValidationError("'diaries' is required")
    if not isinstance(diaries, list):
        raise ValidationError("'diaries' must be an array")
    if not diaries:
        raise ValidationError("'diaries' must contain at least one entry")

    memories = body.get("memories")
    if memories is not None and not isinstance(memories, list):
        raise ValidationError("'memories' must be an array")

    return AnalysisRequest(
        diaries=diaries,
        memories=memories,
        options=derive_options(body.get("options")),
    )
