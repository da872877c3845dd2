"""Pluggable AI text-completion providers.

The core never calls these. A consumer (``Assistant``) awaits them
after the deterministic command path has already run, and treats any
failure as ``ExternalServiceError``. Implement ``CompletionProvider``
or use one of the built-in ones.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from .errors import ExternalServiceError
from .store import ConnectionStore
from .strength import describe
from .types import Connection

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 500
TEMPERATURE = 0.7


@dataclass(frozen=True)
class ChatTurn:
    role: str  # "user" or "assistant"
    content: str


@dataclass(frozen=True)
class ConnectionSummary:
    """Grounding context for one connection. Never carries notes."""

    name: str
    relationship: str
    priority: str
    strength: int
    days_since_contact: int
    interaction_count: int

    def line(self) -> str:
        return (
            f"- {self.name} ({self.relationship}, {self.priority}): "
            f"strength {self.strength}/5, last contact {self.days_since_contact} days ago, "
            f"{self.interaction_count} interactions"
        )


def summarize_connection(store: ConnectionStore, connection: Connection) -> ConnectionSummary:
    return ConnectionSummary(
        name=connection.name,
        relationship=connection.relationship.value,
        priority=connection.priority.value,
        strength=connection.strength,
        days_since_contact=store.days_since_contact(connection),
        interaction_count=len(connection.interactions),
    )


def summarize(store: ConnectionStore) -> list[ConnectionSummary]:
    return [summarize_connection(store, c) for c in store]


def build_system_prompt(summaries: Iterable[ConnectionSummary]) -> str:
    network = "\n".join(s.line() for s in summaries) or "No connections yet."
    grades = "\n".join(f"- {g}: {describe(g)}" for g in range(5, 0, -1))
    return f"""\
You are Silk, a relationship assistant. You help the user keep in touch
with the people who matter to them: logging interactions, spotting who
needs attention, and answering questions about their network.

## The user's network
{network}

## Priority tiers
- P1: weekly contact goal (7 days)
- P2: bi-weekly contact goal (14 days)
- P3: monthly contact goal (30 days)

## Strength (1-5)
{grades}

## How to respond
- Warm, supportive, never guilt-inducing.
- Concise: 2-4 sentences for simple questions.
- When something was logged or changed, confirm it.
- When a person can't be found, suggest alternatives.
"""


def reconnection_prompt(summary: ConnectionSummary) -> str:
    return (
        "Write a brief (1-2 sentences) personalized suggestion for reconnecting "
        f"with {summary.name}. Start with \"Reach out to {summary.name}\". "
        f"Relationship: {summary.relationship}. "
        f"Days since last contact: {summary.days_since_contact}."
    )


class CompletionProvider(abc.ABC):
    """Abstract base. Implement ``ask`` and ``name``."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        ...

    @abc.abstractmethod
    async def ask(
        self,
        message: str,
        summaries: Sequence[ConnectionSummary],
        history: Sequence[ChatTurn] = (),
    ) -> str:
        """Return the assistant's reply. Raise ``ExternalServiceError`` on failure."""
        ...

    async def suggest(self, summary: ConnectionSummary) -> str:
        """One reconnection suggestion for ``summary``."""
        return await self.ask(reconnection_prompt(summary), [summary])

    def _failed(self, exc: Exception) -> ExternalServiceError:
        logger.warning("%s completion failed: %s", self.name, exc)
        return ExternalServiceError(self.name, str(exc) or type(exc).__name__)


def _messages(message: str, summaries: Sequence[ConnectionSummary], history: Sequence[ChatTurn]) -> list[dict]:
    """OpenAI-style message list, shared by the chat-completion backends."""
    messages = [{"role": "system", "content": build_system_prompt(summaries)}]
    messages += [{"role": t.role, "content": t.content} for t in history]
    messages.append({"role": "user", "content": message})
    return messages


class GeminiCompletionProvider(CompletionProvider):
    """Google Gemini via google-genai.

    pip install silkweb[gemini]
    """

    def __init__(self, model: str = "gemini-2.0-flash", *, api_key: str | None = None):
        self._model = model
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "gemini"

    async def ask(self, message, summaries, history=()):
        try:
            from google import genai

            client = genai.Client(api_key=self._api_key) if self._api_key else genai.Client()
            contents = [
                genai.types.Content(
                    role="model" if t.role == "assistant" else "user",
                    parts=[genai.types.Part(text=t.content)],
                )
                for t in history
            ]
            contents.append(genai.types.Content(role="user", parts=[genai.types.Part(text=message)]))
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=genai.types.GenerateContentConfig(
                    system_instruction=build_system_prompt(summaries),
                    max_output_tokens=MAX_OUTPUT_TOKENS,
                    temperature=TEMPERATURE,
                ),
            )
        except Exception as exc:
            raise self._failed(exc) from exc

        if not response.text:
            raise ExternalServiceError(self.name, "empty response")
        return response.text


class OpenAICompletionProvider(CompletionProvider):
    """OpenAI / Azure OpenAI chat completions.

    pip install silkweb[openai]
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        *,
        api_key: str | None = None,
        base_url: str | None = None,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url

    @property
    def name(self) -> str:
        return "openai"

    async def ask(self, message, summaries, history=()):
        try:
            from openai import AsyncOpenAI

            client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
            response = await client.chat.completions.create(
                model=self._model,
                messages=_messages(message, summaries, history),
                max_tokens=MAX_OUTPUT_TOKENS,
                temperature=TEMPERATURE,
            )
        except Exception as exc:
            raise self._failed(exc) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ExternalServiceError(self.name, "empty response")
        return content


class OllamaCompletionProvider(CompletionProvider):
    """Local Ollama chat model.

    pip install silkweb[ollama]
    """

    def __init__(self, model: str = "llama3.2", *, host: str | None = None):
        self._model = model
        self._host = host

    @property
    def name(self) -> str:
        return "ollama"

    async def ask(self, message, summaries, history=()):
        try:
            import ollama as _ollama

            client = _ollama.AsyncClient(host=self._host) if self._host else _ollama.AsyncClient()
            response = await client.chat(
                model=self._model,
                messages=_messages(message, summaries, history),
                options={"temperature": TEMPERATURE, "num_predict": MAX_OUTPUT_TOKENS},
            )
        except Exception as exc:
            raise self._failed(exc) from exc

        content = response["message"]["content"]
        if not content:
            raise ExternalServiceError(self.name, "empty response")
        return content
