"""silkweb — Relationship intelligence: connections, strength, intents, reminders.

Core (no framework deps):
    from silkweb import ConnectionStore, EventBus, IntentParser, CommandExecutor, ReminderSynthesizer

AI providers (optional deps):
    from silkweb import GeminiCompletionProvider, OpenAICompletionProvider, OllamaCompletionProvider

Persistence (SQLAlchemy asyncio):
    from silkweb import SnapshotRepository
"""

from importlib.metadata import version

__version__ = version("silkweb")

from .ai import (
    ChatTurn,
    CompletionProvider,
    ConnectionSummary,
    GeminiCompletionProvider,
    OllamaCompletionProvider,
    OpenAICompletionProvider,
)
from .assistant import Assistant, Reply
from .config import Settings, build_provider, configure_logging, load_settings
from .errors import ExternalServiceError, NotFoundError, SilkwebError, ValidationError
from .events import (
    ConnectionAdded,
    ConnectionDeleted,
    ConnectionUpdated,
    EventBus,
    InteractionAdded,
    StrengthUpdated,
)
from .executor import CommandExecutor, Outcome, OutcomeStatus
from .memories import MemoryLog
from .parser import IntentParser
from .reminders import Reminder, ReminderPriority, ReminderSynthesizer, ReminderType, filter_reminders
from .repository import SnapshotRepository
from .store import ConnectionStore, OnboardingPerson
from .strength import strength
from .types import (
    Connection,
    ConnectionDraft,
    Interaction,
    InteractionDraft,
    InteractionType,
    Memory,
    MemoryType,
    Mood,
    Priority,
    Relationship,
)

__all__ = [
    # Version
    "__version__",
    # Model
    "Connection",
    "ConnectionDraft",
    "Interaction",
    "InteractionDraft",
    "InteractionType",
    "Memory",
    "MemoryType",
    "Mood",
    "Priority",
    "Relationship",
    "strength",
    # Core
    "ConnectionStore",
    "OnboardingPerson",
    "EventBus",
    "ConnectionAdded",
    "ConnectionUpdated",
    "ConnectionDeleted",
    "InteractionAdded",
    "StrengthUpdated",
    "MemoryLog",
    "IntentParser",
    "CommandExecutor",
    "Outcome",
    "OutcomeStatus",
    "ReminderSynthesizer",
    "Reminder",
    "ReminderType",
    "ReminderPriority",
    "filter_reminders",
    # Errors
    "SilkwebError",
    "ValidationError",
    "NotFoundError",
    "ExternalServiceError",
    # AI
    "CompletionProvider",
    "ConnectionSummary",
    "ChatTurn",
    "GeminiCompletionProvider",
    "OpenAICompletionProvider",
    "OllamaCompletionProvider",
    "Assistant",
    "Reply",
    # Persistence and config
    "SnapshotRepository",
    "Settings",
    "load_settings",
    "configure_logging",
    "build_provider",
]
