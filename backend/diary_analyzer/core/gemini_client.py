"""
Gemini REST client with retry on provider overload
"""
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import httpx

from diary_analyzer.core.config import Settings
from diary_analyzer.core.errors import EmptyResponseError, ProviderError, TransientProviderError
from diary_analyzer.core.logging_config import LoggingConfig
from diary_analyzer.core.retry import exponential_backoff, retry_async

logger = LoggingConfig.get_logger(__name__)

OVERLOAD_STATUS_CODE = 503
OVERLOAD_STATUS_NAME = "UNAVAILABLE"
OVERLOAD_MARKER = "overloaded"

JSON_MIME_TYPE = "application/json"
UNEXPECTED_SHAPE_MESSAGE = "Gemini API returned an unexpected response shape"


def is_overload_error(error: Exception) -> bool:
    """
    Canonical overload rule: HTTP 503, upstream status UNAVAILABLE,
    or "overloaded" anywhere in the message.
    """
    if isinstance(error, TransientProviderError):
        return True
    if getattr(error, "status_code", None) == OVERLOAD_STATUS_CODE:
        return True
    message = str(error)
    return OVERLOAD_MARKER in message.lower() or f'"{OVERLOAD_STATUS_NAME}"' in message


def _error_from_response(response: httpx.Response) -> ProviderError:
    """Turn a non-2xx Gemini response into a typed error"""
    body = response.text or ""
    upstream_status = None
    upstream_message = ""
    try:
        data = response.json()
        error = data.get("error", {}) if isinstance(data, dict) else {}
        if isinstance(error, dict):
            upstream_status = error.get("status")
            upstream_message = str(error.get("message") or "")
    except ValueError:
        pass

    # Keep the JSON body as the message so the envelope can surface its message/code
    if body.lstrip().startswith("{"):
        message = body.strip()
    else:
        message = f"Gemini API returned HTTP {response.status_code}"
        if body.strip():
            message = f"{message}: {body.strip()[:200]}"

    overloaded = (
        response.status_code == OVERLOAD_STATUS_CODE
        or upstream_status == OVERLOAD_STATUS_NAME
        or OVERLOAD_MARKER in upstream_message.lower()
    )
    if overloaded:
        return TransientProviderError(message, status_code=response.status_code)
    return ProviderError(message, status_code=response.status_code)


def _unexpected_shape() -> ProviderError:
    return ProviderError(UNEXPECTED_SHAPE_MESSAGE, status_code=502)


def extract_text(data: Dict[str, Any]) -> str:
    """
    Join the text parts of the first candidate; empty string if there are none

    Raises:
        ProviderError: the body, candidate, content or a part is not the documented object shape
    """
    if not isinstance(data, dict):
        raise _unexpected_shape()
    candidates = data.get("candidates") or []
    if not isinstance(candidates, list):
        raise _unexpected_shape()
    if not candidates:
        return ""
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise _unexpected_shape()
    content = candidate.get("content") or {}
    if not isinstance(content, dict):
        raise _unexpected_shape()
    parts = content.get("parts") or []
    if not isinstance(parts, list) or not all(isinstance(part, dict) for part in parts):
        raise _unexpected_shape()
    texts = [part.get("text") or "" for part in parts]
    if not all(isinstance(text, str) for text in texts):
        raise _unexpected_shape()
    return "".join(texts)


class GeminiClient:
    """
    Client for the Gemini generateContent endpoint

    One httpx.AsyncClient is opened per call; the API key travels in the
    x-goog-api-key header, never in the URL.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        max_attempts: int = 3,
        initial_delay_ms: int = 1000,
        backoff_factor: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.api_key = api_key
        self.model = model[len("models/"):] if model.startswith("models/") else model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.delay_for = exponential_backoff(initial_delay_ms, backoff_factor)
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "GeminiClient":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.llm_timeout_seconds,
            max_attempts=settings.retry_max_attempts,
            initial_delay_ms=settings.retry_initial_delay_ms,
            backoff_factor=settings.retry_backoff_factor,
            **kwargs,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
            transport=self._transport,
        )

    def build_payload(self, prompt: Union[str, Sequence[str]], response_mime_type: Optional[str] = JSON_MIME_TYPE) -> Dict[str, Any]:
        """One user message with one text part per prompt segment"""
        segments = [prompt] if isinstance(prompt, str) else list(prompt)
        payload: Dict[str, Any] = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": segment} for segment in segments],
                }
            ]
        }
        if response_mime_type:
            payload["generationConfig"] = {"responseMimeType": response_mime_type}
        return payload

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Single HTTP exchange; no retry here"""
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderError("Request to the Gemini API timed out", status_code=504) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Could not reach the Gemini API: {e}", status_code=502) from e

        if response.status_code >= 400:
            error = _error_from_response(response)
            logger.warning(
                "Gemini API request failed",
                extra={"status_code": response.status_code, "transient": isinstance(error, TransientProviderError)}
            )
            raise error

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError("Gemini API returned a non-JSON body", status_code=502) from e

        if not isinstance(data, dict):
            logger.warning("Gemini API returned a non-object body", extra={"body_type": type(data).__name__})
            raise _unexpected_shape()
        return data

    async def generate_content(
        self,
        prompt: Union[str, Sequence[str]],
        response_mime_type: Optional[str] = JSON_MIME_TYPE,
    ) -> str:
        """
        Generate content and return the raw text of the first candidate

        Args:
            prompt: Prompt text or ordered prompt segments
            response_mime_type: Requested output mime type (best effort on the provider side)

        Returns:
            Non-empty response text

        Raises:
            TransientProviderError: provider still overloaded after the last attempt
            ProviderError: any other upstream or transport failure
            EmptyResponseError: the call succeeded but produced no text
        """
        payload = self.build_payload(prompt, response_mime_type)
        url = f"/models/{self.model}:generateContent"
        start_time = time.monotonic()

        async with self._client() as client:
            async def attempt(index: int) -> Dict[str, Any]:
                logger.debug(f"Sending generateContent request (attempt {index + 1}/{self.max_attempts})", extra={"model": self.model})
                return await self._send(client, "POST", url, json=payload)

            data = await retry_async(
                attempt,
                should_retry=is_overload_error,
                delay_for=self.delay_for,
                max_attempts=self.max_attempts,
                sleep=self._sleep,
            )

        duration_ms = int((time.monotonic() - start_time) * 1000)
        text = extract_text(data)
        if not text.strip():
            feedback = data.get("promptFeedback")
            block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            if block_reason:
                raise EmptyResponseError(f"The model returned an empty response (blocked: {block_reason})")
            raise EmptyResponseError()

        logger.info(
            "Gemini generation completed",
            extra={"model": self.model, "duration_ms": duration_ms, "response_chars": len(text)}
        )
        return text

    async def list_models(self) -> List[Dict[str, Any]]:
        """List every model visible to the API key, following pagination"""
        models: List[Dict[str, Any]] = []
        params: Dict[str, Any] = {"pageSize": 1000}
        async with self._client() as client:
            while True:
                data = await self._send(client, "GET", "/models", params=params)
                page = data.get("models") or []
                if not isinstance(page, list):
                    raise _unexpected_shape()
                models.extend(page)
                token = data.get("nextPageToken")
                if not token:
                    break
                params = {"pageSize": 1000, "pageToken": token}
        return models


def supports_generate_content(model: Dict[str, Any]) -> bool:
    return "generateContent" in (model.get("supportedGenerationMethods") or [])

