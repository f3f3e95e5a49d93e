"""
Application context: settings, base prompt and provider client, built once at startup
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from diary_analyzer.core.config import Settings, get_settings
from diary_analyzer.core.errors import ConfigurationError
from diary_analyzer.core.gemini_client import GeminiClient
from diary_analyzer.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


def load_base_prompt(path: Path) -> str:
    """Read the base system prompt; an unreadable or empty file is fatal"""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read base prompt file {path}: {e.strerror or e}") from e
    if not text.strip():
        raise ConfigurationError(f"Base prompt file {path} is empty")
    return text


@dataclass(frozen=True)
class AnalyzerContext:
    """Read-only state shared by every request"""

    settings: Settings
    base_prompt: str
    client: GeminiClient


def build_context(settings: Optional[Settings] = None, client: Optional[GeminiClient] = None) -> AnalyzerContext:
    """
    Validate configuration and load the base prompt

    Raises:
        ConfigurationError: missing credential or unreadable prompt file
    """
    settings = settings or get_settings()
    base_prompt = load_base_prompt(settings.prompt_file)
    logger.info(
        "Loaded base prompt",
        extra={"prompt_file": str(settings.prompt_file), "prompt_chars": len(base_prompt)}
    )
    return AnalyzerContext(
        settings=settings,
        base_prompt=base_prompt,
        client=client or GeminiClient.from_settings(settings),
    )
