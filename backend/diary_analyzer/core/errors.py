"""
Error taxonomy for the diary analysis pipeline
"""
from typing import Optional


class AnalyzerError(Exception):
    """Base class for every failure the pipeline knows how to report"""

    status_code: int = 500
    code: Optional[int] = None

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.code = code if code is not None else self.status_code

    def __str__(self) -> str:
        return self.message


class ValidationError(AnalyzerError):
    """Malformed request payload (caller's fault)"""

    status_code = 400


class ProviderError(AnalyzerError):
    """Non-transient failure reported by the generation provider or the transport"""

    status_code = 502


class TransientProviderError(ProviderError):
    """Provider is temporarily overloaded; safe to retry"""

    status_code = 503


class EmptyResponseError(AnalyzerError):
    """Provider call succeeded but returned no text"""

    status_code = 500

    def __init__(self, message: str = "The model returned an empty response"):
        super().__init__(message)


class MalformedResponseError(AnalyzerError):
    """Provider text is not valid JSON. The raw text is kept for diagnostics."""

    status_code = 500

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class ConfigurationError(AnalyzerError):
    """Fatal startup problem: missing credential, unreadable prompt file"""

    status_code = 500
