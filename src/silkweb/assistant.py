"""Chat-style front door composing the deterministic core with an AI narrative.

Two decoupled steps per message:

    1. parse + execute against the store, synchronously
    2. await the AI provider for a narrative reply

Step 1 never waits on step 2. If the provider is missing or fails, the
reply is built from the deterministic outcome alone.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from dataclasses import dataclass

from .ai import ChatTurn, CompletionProvider, summarize, summarize_connection
from .errors import ExternalServiceError
from .executor import CommandExecutor, Outcome, OutcomeStatus
from .insights import overdue
from .memories import MemoryLog
from .parser import IntentParser
from .reminders import ReminderSynthesizer
from .store import ConnectionStore

logger = logging.getLogger(__name__)

FALLBACK_PREAMBLE = "I didn't fully understand that, but here's what I could do:"


@dataclass
class Reply:
    text: str
    outcome: Outcome
    ai_used: bool = False


class Assistant:
    """One user's conversational session over a ``ConnectionStore``.

    Usage:
        assistant = Assistant(store, provider=GeminiCompletionProvider())
        reply = await assistant.send("I hung out with Sarah yesterday")
        print(reply.text)

        await assistant.refresh_suggestions()
        feed = assistant.reminders.synthesize()
    """

    def __init__(
        self,
        store: ConnectionStore,
        *,
        provider: CompletionProvider | None = None,
        memories: MemoryLog | None = None,
        parser: IntentParser | None = None,
        executor: CommandExecutor | None = None,
        reminders: ReminderSynthesizer | None = None,
        history_window: int = 10,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.provider = provider
        self.parser = parser or IntentParser()
        self.executor = executor or CommandExecutor(store, memories=memories, rng=rng)
        self.reminders = reminders or ReminderSynthesizer(store, memories)
        self._history: deque[ChatTurn] = deque(maxlen=max(0, history_window))

    @property
    def history(self) -> list[ChatTurn]:
        return list(self._history)

    async def send(self, message: str) -> Reply:
        intent = self.parser.parse(message)
        outcome = self.executor.execute(intent)

        ai_text = None
        if self.provider is not None:
            try:
                ai_text = await self.provider.ask(message, summarize(self.store), self.history)
            except ExternalServiceError as exc:
                logger.warning("send: AI reply unavailable, using deterministic result (%s)", exc)

        reply = Reply(text=self._compose(outcome, ai_text), outcome=outcome, ai_used=ai_text is not None)
        self._history.append(ChatTurn("user", message))
        self._history.append(ChatTurn("assistant", reply.text))
        return reply

    async def refresh_suggestions(self, count: int = 5) -> list[str]:
        """Ask for reconnection suggestions for the longest-overdue people.

        The batch replaces the reminder feed's AI suggestions. Returns it.
        """
        batch = []
        for connection in overdue(self.store.connections, self.store.now())[:count]:
            summary = summarize_connection(self.store, connection)
            fallback = f"Reach out to {connection.name} - it's been {summary.days_since_contact} days!"
            if self.provider is None:
                batch.append(fallback)
                continue
            try:
                batch.append(await self.provider.suggest(summary))
            except ExternalServiceError:
                batch.append(fallback)

        self.reminders.set_suggestions(batch)
        logger.info("refresh_suggestions: %d suggestion(s)", len(batch))
        return batch

    def _compose(self, outcome: Outcome, ai_text: str | None) -> str:
        if ai_text is None:
            if outcome.status is OutcomeStatus.HELP:
                return f"{FALLBACK_PREAMBLE}\n\n{outcome.message}"
            return outcome.message
        if outcome.mutated or outcome.status in (OutcomeStatus.NOT_FOUND, OutcomeStatus.INVALID):
            return f"{outcome.message}\n\n{ai_text}"
        return ai_text
