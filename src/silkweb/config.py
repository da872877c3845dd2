"""Settings from the environment (and ``.env``), plus logging and provider wiring."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping

from dotenv import load_dotenv

from .ai import (
    CompletionProvider,
    GeminiCompletionProvider,
    OllamaCompletionProvider,
    OpenAICompletionProvider,
)
from .errors import ValidationError

logger = logging.getLogger(__name__)

AI_PROVIDERS = ("none", "gemini", "openai", "ollama")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    """Runtime configuration, read from ``SILKWEB_*`` variables."""
    database_url: str = "sqlite+aiosqlite:///silkweb.db"
    ai_provider: str = "none"
    ai_model: str | None = None       # None = the provider's default
    ai_api_key: str | None = None
    ai_host: str | None = None        # Ollama host or OpenAI-compatible base URL
    log_level: str = "INFO"
    history_window: int = 10


def load_settings(environ: Mapping[str, str] | None = None, *, dotenv: bool = True) -> Settings:
    """Build ``Settings`` from ``environ`` (default ``os.environ``).

    ``.env`` in the working directory is loaded first unless ``dotenv``
    is False. Existing variables win over ``.env`` values.
    """
    if dotenv:
        load_dotenv()
    env = os.environ if environ is None else environ

    provider = env.get("SILKWEB_AI_PROVIDER", "none").strip().lower() or "none"
    if provider not in AI_PROVIDERS:
        raise ValidationError(
            f"SILKWEB_AI_PROVIDER must be one of {', '.join(AI_PROVIDERS)}, got {provider!r}"
        )

    window = env.get("SILKWEB_HISTORY_WINDOW", "10")
    try:
        history_window = int(window)
    except ValueError:
        raise ValidationError(f"SILKWEB_HISTORY_WINDOW must be an integer, got {window!r}") from None

    return Settings(
        database_url=env.get("SILKWEB_DATABASE_URL", Settings.database_url),
        ai_provider=provider,
        ai_model=env.get("SILKWEB_AI_MODEL") or None,
        ai_api_key=env.get("SILKWEB_AI_API_KEY") or None,
        ai_host=env.get("SILKWEB_AI_HOST") or None,
        log_level=env.get("SILKWEB_LOG_LEVEL", "INFO").upper(),
        history_window=history_window,
    )


def configure_logging(settings: Settings) -> None:
    """Send the ``silkweb`` loggers to stdout at the configured level."""
    root = logging.getLogger("silkweb")
    root.setLevel(settings.log_level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)


def build_provider(settings: Settings) -> CompletionProvider | None:
    """The configured AI provider, or None when AI is off."""
    kwargs = {"model": settings.ai_model} if settings.ai_model else {}
    if settings.ai_provider == "gemini":
        return GeminiCompletionProvider(api_key=settings.ai_api_key, **kwargs)
    if settings.ai_provider == "openai":
        return OpenAICompletionProvider(api_key=settings.ai_api_key, base_url=settings.ai_host, **kwargs)
    if settings.ai_provider == "ollama":
        return OllamaCompletionProvider(host=settings.ai_host, **kwargs)
    logger.debug("build_provider: AI disabled")
    return None
