"""SQLAlchemy tables for durable snapshots.

Three tables: connections, their interactions, and memories. The
in-memory ``ConnectionStore`` stays authoritative; these rows are only
what ``SnapshotRepository`` writes out and reads back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase

from .types import (
    Connection,
    Interaction,
    InteractionType,
    Memory,
    MemoryType,
    Mood,
    Priority,
    Relationship,
    as_utc,
)


def _utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes.
    return as_utc(value) if value is not None else None


@dataclass
class Tables:
    base: type
    connection: type
    interaction: type
    memory: type

    @property
    def metadata(self) -> Any:
        return self.base.metadata


def build_tables(prefix: str = "silkweb") -> Tables:
    """Factory: create the ORM classes with a custom table-name prefix.

    Each call gets its own declarative base, so two prefixes can live in
    one process without clashing in a shared metadata.
    """

    class Base(DeclarativeBase):
        # Plain (non-Mapped) annotations on Column attributes.
        __allow_unmapped__ = True

    class ConnectionRow(Base):
        __tablename__ = f"{prefix}_connection"

        # ── identity ────────────────────────────────────────────────
        id: str = Column(String(64), primary_key=True)
        name: str = Column(String(256), nullable=False)

        # ── classification ──────────────────────────────────────────
        relationship: str = Column(String(16), nullable=False, default=Relationship.OTHER.value)
        priority: str = Column(String(4), nullable=False, default=Priority.P3.value)

        # ── temporal ────────────────────────────────────────────────
        last_contact: datetime = Column(DateTime(timezone=True), nullable=False)
        contact_frequency: int | None = Column(Integer, nullable=True)  # explicit override only
        created_at: datetime = Column(DateTime(timezone=True), nullable=False)

        # ── free-form ───────────────────────────────────────────────
        notes: str = Column(Text, nullable=False, default="")
        tags: list = Column(JSON, nullable=False, default=list)
        phone: str | None = Column(String(64), nullable=True)
        email: str | None = Column(String(256), nullable=True)

        # ── ordering ────────────────────────────────────────────────
        position: int = Column(Integer, nullable=False, default=0)

        __table_args__ = (
            Index(f"ix_{prefix}_connection_name", "name"),
        )

        def to_connection(self, interactions: list[Interaction] | None = None) -> Connection:
            """Convert ORM row → domain Connection. Strength is re-graded by the store."""
            return Connection(
                id=self.id,
                name=self.name,
                relationship=Relationship(self.relationship),
                priority=Priority(self.priority),
                last_contact=_utc(self.last_contact),
                custom_frequency=self.contact_frequency,
                created_at=_utc(self.created_at),
                notes=self.notes or "",
                tags=list(self.tags or []),
                phone=self.phone,
                email=self.email,
                interactions=interactions or [],
            )

        @classmethod
        def from_connection(cls, connection: Connection, position: int = 0) -> "ConnectionRow":
            return cls(
                id=connection.id,
                name=connection.name,
                relationship=connection.relationship.value,
                priority=connection.priority.value,
                last_contact=connection.last_contact,
                contact_frequency=connection.custom_frequency,
                created_at=connection.created_at,
                notes=connection.notes,
                tags=list(connection.tags),
                phone=connection.phone,
                email=connection.email,
                position=position,
            )

        def __repr__(self) -> str:
            return f"<ConnectionRow id={self.id} name={self.name!r} {self.priority}>"

    class InteractionRow(Base):
        __tablename__ = f"{prefix}_interaction"

        id: str = Column(String(64), primary_key=True)
        connection_id: str = Column(
            String(64),
            ForeignKey(f"{prefix}_connection.id", ondelete="CASCADE"),
            nullable=False,
        )
        type: str = Column(String(16), nullable=False)
        date: datetime = Column(DateTime(timezone=True), nullable=False)
        notes: str | None = Column(Text, nullable=True)
        quality: int | None = Column(Integer, nullable=True)
        mood: str | None = Column(String(16), nullable=True)
        topics: list = Column(JSON, nullable=False, default=list)
        duration: int | None = Column(Integer, nullable=True)

        __table_args__ = (
            Index(f"ix_{prefix}_interaction_conn_date", "connection_id", "date"),
        )

        def to_interaction(self) -> Interaction:
            return Interaction(
                id=self.id,
                connection_id=self.connection_id,
                type=InteractionType(self.type),
                date=_utc(self.date),
                notes=self.notes,
                quality=self.quality,
                mood=Mood(self.mood) if self.mood else None,
                topics=tuple(self.topics or ()),
                duration=self.duration,
            )

        @classmethod
        def from_interaction(cls, interaction: Interaction) -> "InteractionRow":
            return cls(
                id=interaction.id,
                connection_id=interaction.connection_id,
                type=interaction.type.value,
                date=interaction.date,
                notes=interaction.notes,
                quality=interaction.quality,
                mood=interaction.mood.value if interaction.mood else None,
                topics=list(interaction.topics),
                duration=interaction.duration,
            )

    class MemoryRow(Base):
        __tablename__ = f"{prefix}_memory"

        id: str = Column(String(64), primary_key=True)
        connection_id: str = Column(
            String(64),
            ForeignKey(f"{prefix}_connection.id", ondelete="CASCADE"),
            nullable=False,
        )
        type: str = Column(String(16), nullable=False)
        content: str = Column(Text, nullable=False)
        importance: int = Column(Integer, nullable=False, default=5)
        tags: list = Column(JSON, nullable=False, default=list)
        timestamp: datetime = Column(DateTime(timezone=True), nullable=False)
        context: str | None = Column(Text, nullable=True)

        __table_args__ = (
            Index(f"ix_{prefix}_memory_conn", "connection_id"),
        )

        def to_memory(self) -> Memory:
            return Memory(
                id=self.id,
                connection_id=self.connection_id,
                type=MemoryType(self.type),
                content=self.content,
                importance=self.importance,
                tags=list(self.tags or []),
                timestamp=_utc(self.timestamp),
                context=self.context,
            )

        @classmethod
        def from_memory(cls, memory: Memory) -> "MemoryRow":
            return cls(
                id=memory.id,
                connection_id=memory.connection_id,
                type=memory.type.value,
                content=memory.content,
                importance=memory.importance,
                tags=list(memory.tags),
                timestamp=memory.timestamp,
                context=memory.context,
            )

    return Tables(base=Base, connection=ConnectionRow, interaction=InteractionRow, memory=MemoryRow)
