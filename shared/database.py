"""
Database interface (Protocol) for the review generator.

Every backend (Supabase Postgres, local SQLite) implements a database module
with these coroutines. Handlers only ever talk to this interface.
"""
from __future__ import annotations

from typing import Protocol


class DatabaseProvider(Protocol):
    """Protocol defining the database interface for all providers."""

    async def init_db(self) -> None:
        """Initialize the database (create tables, etc.)."""
        ...

    async def insert_generated_review(
        self,
        store_id: str,
        review_text: str,
        lang: str,
        variant: int,
        tags_used: list[str],
        cons_used: list[str],
        similarity: float,
        attempts: int,
        client_ip: str | None = None,
    ) -> int:
        """Persist a generated review. Returns the new row id."""
        ...

    async def update_review_confirmation(
        self,
        review_id: int,
        likely_posted: bool | None,
        columns: dict[str, str | None],
    ) -> int | None:
        """Apply a confirm payload (None values keep the stored value). Returns the id or None."""
        ...

    async def max_similarity(self, store_id: str, text: str, limit: int) -> tuple[float, str | None]:
        """Score text against the most recent reviews of a store. Returns (score, best match)."""
        ...

    async def record_event(
        self,
        store_id: str | None,
        event_type: str,
        tags_used: list[str] | None = None,
        review_id: int | None = None,
    ) -> int:
        """Insert a generator event. Returns the new row id."""
        ...

    async def daily_funnel(self, days: int, store_id: str | None = None) -> list[dict]:
        """Per-day generated/clicked/posted counts for the last `days` days."""
        ...

    async def tag_funnel(self, days: int, store_id: str | None = None) -> list[dict]:
        """Per-tag generated/clicked counts for the last `days` days."""
        ...

    async def get_daily_usage(self, client_ip: str, day: str) -> int:
        """Number of generations an IP has made on a given day (YYYY-MM-DD)."""
        ...

    async def increment_daily_usage(self, client_ip: str, day: str) -> int:
        """Count one generation for an IP. Returns the new count."""
        ...
