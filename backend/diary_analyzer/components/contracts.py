"""
Contract models for the analysis pipeline.

Everything here is built per request and discarded once the response is sent.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OutputOptions(BaseModel):
    """Which output fields the model is asked to produce"""

    model_config = ConfigDict(frozen=True)

    daily_text: bool = True
    mood_sentences: bool = True
    memories: bool = True


class AnalysisRequest(BaseModel):
    """Validated /api/analyze payload. Diary entries and memories are opaque JSON."""

    model_config = ConfigDict(frozen=True)

    diaries: List[Any] = Field(..., min_length=1)
    memories: Optional[List[Any]] = None
    options: OutputOptions = Field(default_factory=OutputOptions)


class PromptPayload(BaseModel):
    """Ordered text segments sent to the provider as one user message"""

    segments: List[str] = Field(default_factory=list)

    def as_text(self) -> str:
        return "\n\n".join(self.segments)


class ErrorBody(BaseModel):
    message: str
    code: Any


class ResponseEnvelope(BaseModel):
    """The only shape ever returned to callers"""

    success: bool
    data: Optional[Any] = None
    error: Optional[ErrorBody] = None

    @model_validator(mode="after")
    def check_exclusive(self) -> "ResponseEnvelope":
        if self.success and self.error is not None:
            raise ValueError("successful envelope cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("failed envelope must carry an error")
        return self

    @classmethod
    def ok(cls, data: Any) -> "ResponseEnvelope":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str, code: Any) -> "ResponseEnvelope":
        return cls(success=False, error=ErrorBody(message=message, code=code))

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error.model_dump()}
