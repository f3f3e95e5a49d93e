"""
Tests for the Gemini REST client (outbound calls served by httpx.MockTransport)
"""
import json

import httpx
import pytest

from diary_analyzer.core.errors import EmptyResponseError, ProviderError, TransientProviderError
from diary_analyzer.core.gemini_client import GeminiClient, extract_text

OVERLOADED_BODY = {"error": {"code": 503, "message": "The model is overloaded. Please try again later.", "status": "UNAVAILABLE"}}
AUTH_BODY = {"error": {"code": 400, "message": "API key not valid. Please pass a valid API key.", "status": "INVALID_ARGUMENT"}}


def success_body(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}]}


class Recorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def make_client(responses, requests, sleep=None, **kwargs):
    """responses: list of httpx.Response or exceptions, consumed in order"""
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        outcome = queue.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return GeminiClient(
        api_key="secret-key",
        model="gemini-test",
        transport=httpx.MockTransport(handler),
        sleep=sleep or Recorder(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_generate_content_sends_json_mime_type_and_header():
    requests = []
    client = make_client([httpx.Response(200, json=success_body('{"daily_text": "hi"}'))], requests)

    text = await client.generate_content(["BASE", "INSTRUCTIONS", "CONTEXT"])

    assert text == '{"daily_text": "hi"}'
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v1beta/models/gemini-test:generateContent"
    assert request.headers["x-goog-api-key"] == "secret-key"
    assert "secret-key" not in str(request.url)
    payload = json.loads(request.content)
    assert payload["generationConfig"] == {"responseMimeType": "application/json"}
    assert [part["text"] for part in payload["contents"][0]["parts"]] == ["BASE", "INSTRUCTIONS", "CONTEXT"]
    assert payload["contents"][0]["role"] == "user"


@pytest.mark.asyncio
async def test_plain_text_generation_omits_generation_config():
    requests = []
    client = make_client([httpx.Response(200, json=success_body("Hello"))], requests)

    assert await client.generate_content("Say hello", response_mime_type=None) == "Hello"
    assert "generationConfig" not in json.loads(requests[0].content)


@pytest.mark.asyncio
async def test_overload_twice_then_success_backs_off_exponentially():
    requests = []
    sleep = Recorder()
    client = make_client(
        [
            httpx.Response(503, json=OVERLOADED_BODY),
            httpx.Response(503, json=OVERLOADED_BODY),
            httpx.Response(200, json=success_body("{}")),
        ],
        requests,
        sleep=sleep,
    )

    assert await client.generate_content("prompt") == "{}"
    assert len(requests) == 3
    assert sleep.delays == [1.0, 2.0]
    assert sleep.delays[1] >= 2 * sleep.delays[0]


@pytest.mark.asyncio
async def test_overloaded_message_without_503_is_retried():
    requests = []
    body = {"error": {"code": 500, "message": "Model overloaded", "status": "INTERNAL"}}
    client = make_client(
        [httpx.Response(500, json=body), httpx.Response(200, json=success_body("{}"))],
        requests,
    )

    assert await client.generate_content("prompt") == "{}"
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_auth_failure_is_not_retried():
    requests = []
    sleep = Recorder()
    client = make_client([httpx.Response(400, json=AUTH_BODY)], requests, sleep=sleep)

    with pytest.raises(ProviderError) as exc_info:
        await client.generate_content("prompt")

    assert not isinstance(exc_info.value, TransientProviderError)
    assert exc_info.value.status_code == 400
    assert "API key not valid" in exc_info.value.message
    assert len(requests) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_overload_exhausts_configured_attempts():
    requests = []
    sleep = Recorder()
    client = make_client(
        [httpx.Response(503, json=OVERLOADED_BODY) for _ in range(4)],
        requests,
        sleep=sleep,
        max_attempts=4,
        initial_delay_ms=500,
    )

    with pytest.raises(TransientProviderError) as exc_info:
        await client.generate_content("prompt")

    assert exc_info.value.status_code == 503
    assert len(requests) == 4
    assert sleep.delays == [0.5, 1.0, 2.0]


@pytest.mark.asyncio
async def test_empty_candidates_raise_without_retry():
    requests = []
    client = make_client([httpx.Response(200, json={"candidates": []})], requests)

    with pytest.raises(EmptyResponseError):
        await client.generate_content("prompt")

    assert len(requests) == 1


@pytest.mark.asyncio
async def test_blocked_prompt_reports_reason():
    requests = []
    client = make_client([httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})], requests)

    with pytest.raises(EmptyResponseError) as exc_info:
        await client.generate_content("prompt")

    assert "SAFETY" in exc_info.value.message


@pytest.mark.asyncio
async def test_transport_failure_is_provider_error_without_retry():
    requests = []
    request = httpx.Request("POST", "https://example.invalid")
    client = make_client([httpx.ConnectError("connection refused", request=request)], requests)

    with pytest.raises(ProviderError) as exc_info:
        await client.generate_content("prompt")

    assert exc_info.value.status_code == 502
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_timeout_maps_to_504():
    requests = []
    request = httpx.Request("POST", "https://example.invalid")
    client = make_client([httpx.ReadTimeout("timed out", request=request)], requests)

    with pytest.raises(ProviderError) as exc_info:
        await client.generate_content("prompt")

    assert exc_info.value.status_code == 504


@pytest.mark.asyncio
async def test_non_json_error_body_gets_readable_message():
    requests = []
    client = make_client([httpx.Response(502, text="Bad Gateway")], requests)

    with pytest.raises(ProviderError) as exc_info:
        await client.generate_content("prompt")

    assert exc_info.value.message == "Gemini API returned HTTP 502: Bad Gateway"


@pytest.mark.asyncio
async def test_list_models_follows_pagination():
    requests = []
    client = make_client(
        [
            httpx.Response(200, json={"models": [{"name": "models/a"}], "nextPageToken": "next"}),
            httpx.Response(200, json={"models": [{"name": "models/b"}]}),
        ],
        requests,
    )

    models = await client.list_models()

    assert [m["name"] for m in models] == ["models/a", "models/b"]
    assert requests[1].url.params["pageToken"] == "next"


def test_model_prefix_is_stripped():
    client = GeminiClient(api_key="k", model="models/gemini-test")

    assert client.model == "gemini-test"


def test_extract_text_joins_parts():
    data = {"candidates": [{"content": {"parts": [{"text": '{"a": '}, {"text": "1}"}]}}]}

    assert extract_text(data) == '{"a": 1}'
    assert extract_text({}) == ""


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        [],
        [{"candidates": []}],
        {"candidates": "nope"},
        {"candidates": ["not an object"]},
        {"candidates": [{"content": ["x"]}]},
        {"candidates": [{"content": {"parts": ["x"]}}]},
        {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
    ],
)
async def test_unexpected_success_shape_is_provider_error(body):
    requests = []
    client = make_client([httpx.Response(200, json=body)], requests)

    with pytest.raises(ProviderError) as exc_info:
        await client.generate_content("prompt")

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "Gemini API returned an unexpected response shape"
    assert len(requests) == 1


def test_extract_text_skips_null_text_parts():
    data = {"candidates": [{"content": {"parts": [{"text": None}, {"text": "{}"}]}}]}

    assert extract_text(data) == "{}"


@pytest.mark.asyncio
async def test_null_text_only_is_empty_response():
    requests = []
    body = {"candidates": [{"content": {"parts": [{"text": None}]}}]}
    client = make_client([httpx.Response(200, json=body)], requests)

    with pytest.raises(EmptyResponseError):
        await client.generate_content("prompt")
