"""Terminal chat session over a persisted silkweb network.

    SILKWEB_AI_PROVIDER=gemini python example/chat/chat.py

Reads SILKWEB_* settings (and .env), loads the last snapshot, shows
today's reminders, then hands every typed line to the assistant.
The snapshot is saved on exit.

The default database is a local SQLite file (aiosqlite is installed with
silkweb). For Postgres, install silkweb[postgres] and set
SILKWEB_DATABASE_URL=postgresql+asyncpg://...
"""

import asyncio
import logging

from silkweb import (
    Assistant,
    ConnectionStore,
    EventBus,
    MemoryLog,
    SnapshotRepository,
    build_provider,
    configure_logging,
    load_settings,
)
from silkweb.insights import daily_insights

logger = logging.getLogger("silkweb.example")


def show_feed(reminders) -> None:
    if not reminders:
        print("Nothing due. Your network is in good shape.\n")
        return
    for r in reminders:
        print(f"[{r.priority.value}] {r.message}")
        if r.action_suggestion:
            print(f"    -> {r.action_suggestion}")
        if r.ai_rationale and r.ai_rationale != r.message:
            print(f"    {r.ai_rationale}")
    print()


async def main() -> None:
    settings = load_settings()
    configure_logging(settings)

    bus = EventBus()
    store = ConnectionStore(bus)
    memories = MemoryLog()
    memories.attach(bus)

    assistant = Assistant(
        store,
        provider=build_provider(settings),
        memories=memories,
        history_window=settings.history_window,
    )

    async with SnapshotRepository(settings.database_url) as repo:
        await repo.load(store, memories)
        logger.info("loaded %d connection(s)", len(store))

        for line in daily_insights(store.connections, store.now()):
            print(line)
        await assistant.refresh_suggestions()
        show_feed(assistant.reminders.synthesize())

        try:
            while True:
                try:
                    text = await asyncio.to_thread(input, "you> ")
                except EOFError:
                    break
                if text.strip().lower() in ("quit", "exit"):
                    break
                if not text.strip():
                    continue
                reply = await assistant.send(text)
                print(f"silk> {reply.text}\n")
        finally:
            await repo.save(store, memories)


if __name__ == "__main__":
    asyncio.run(main())
