"""
Maps any failure to the uniform error envelope
"""
import json
from typing import Any, Dict, Optional, Tuple

from diary_analyzer.components.contracts import ResponseEnvelope
from diary_analyzer.core.errors import AnalyzerError

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def _embedded_error(message: str) -> Dict[str, Any]:
    """
    Some upstream errors carry a JSON document as their message, e.g.
    {"error": {"code": 503, "message": "...", "status": "UNAVAILABLE"}}.
    Returns the innermost object holding message/code, or {} if unparseable.
    """
    if not message.lstrip().startswith("{"):
        return {}
    try:
        data = json.loads(message)
    except ValueError:
        return {}
    if not isinstance(data, dict):
        return {}
    inner = data.get("error")
    if isinstance(inner, dict):
        return inner
    return data


def normalize_error(error: BaseException) -> Tuple[int, Dict[str, Any]]:
    """
    Build (status_code, envelope) for a failure

    Status comes from the failure when it has one, else 500. The message is taken
    from an embedded JSON document when present, else the failure's own text,
    else a generic fallback. Failures outside the AnalyzerError hierarchy always
    get the generic message; callers log their details. Exception type names and
    tracebacks never appear.
    """
    if not isinstance(error, AnalyzerError):
        return 500, ResponseEnvelope.fail(GENERIC_ERROR_MESSAGE, 500).to_dict()

    status_code = error.status_code
    if not isinstance(status_code, int) or not 400 <= status_code <= 599:
        status_code = 500

    raw_message = error.message if isinstance(error.message, str) else ""
    message: Optional[str] = None
    code: Any = error.code

    embedded = _embedded_error(raw_message)
    if embedded:
        embedded_message = embedded.get("message")
        if isinstance(embedded_message, str) and embedded_message.strip():
            message = embedded_message.strip()
        if embedded.get("code") is not None:
            code = embedded["code"]
    elif raw_message.strip():
        message = raw_message.strip()

    if not message:
        message = GENERIC_ERROR_MESSAGE
    if code is None:
        code = status_code

    return status_code, ResponseEnvelope.fail(message, code).to_dict()
