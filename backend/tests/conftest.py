"""
Pytest configuration and fixtures
"""
from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient

from diary_analyzer.core.app_context import AnalyzerContext
from diary_analyzer.core.config import LoggingSettings, Settings
from diary_analyzer.core.logging_config import LoggingConfig
from diary_analyzer.main import create_app

BASE_PROMPT = "You are a journaling companion. Answer in JSON."


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure logging once so later configure() calls don't replace pytest's handlers"""
    LoggingConfig.configure(
        LoggingSettings(_env_file=None, app_env="test", log_format="text", log_file_enabled=False),
        force=True,
    )


class FakeGeminiClient:
    """Stands in for GeminiClient: replays queued results and records calls"""

    def __init__(self, results: Optional[List[Any]] = None):
        self.results = list(results or [])
        self.calls = []

    async def generate_content(self, prompt, response_mime_type="application/json"):
        self.calls.append({"prompt": prompt, "response_mime_type": response_mime_type})
        if not self.results:
            raise AssertionError("FakeGeminiClient called more times than expected")
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture
def prompt_file(tmp_path):
    path = tmp_path / "system_prompt.txt"
    path.write_text(BASE_PROMPT, encoding="utf-8")
    return path


@pytest.fixture
def settings(prompt_file) -> Settings:
    return Settings(
        _env_file=None,
        app_env="test",
        gemini_api_key="test-api-key",
        gemini_model="gemini-test",
        prompt_file=prompt_file,
        retry_initial_delay_ms=0,
    )


@pytest.fixture
def fake_client() -> FakeGeminiClient:
    return FakeGeminiClient()


@pytest.fixture
def context(settings, fake_client) -> AnalyzerContext:
    return AnalyzerContext(settings=settings, base_prompt=BASE_PROMPT, client=fake_client)


@pytest.fixture
def app(context):
    return create_app(context=context)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_diaries():
    return [
        {"id": "1", "diary": "ok", "emotion": "calm", "date": "2024-01-01"},
        {"id": "2", "diary": "Long run by the river, felt great.", "emotion": "happy", "date": "2024-01-02"},
    ]
