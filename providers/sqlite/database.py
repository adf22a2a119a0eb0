"""
Database operations using SQLite via aiosqlite (local provider).
Implements the DatabaseProvider interface from shared.database.

Used for local development and tests. Similarity is scored in Python
because SQLite has no trigram support.
"""
from __future__ import annotations

import json
from pathlib import Path

import aiosqlite

from shared.similarity import best_match

# Database file - set by provider via configure()
_database_path = "data/reviews.db"


def configure(database_path: str):
    """Point the provider at a SQLite file."""
    global _database_path
    _database_path = str(database_path)


async def init_db():
    """Initialize the database with required tables."""
    db_path = Path(_database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(_database_path) as db:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS generated_reviews (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                store_id TEXT NOT NULL,
                lang TEXT,
                variant INTEGER,
                review_text TEXT NOT NULL,
                tags_used TEXT,
                cons_used TEXT,
                similarity REAL,
                attempts INTEGER,
                client_ip TEXT,
                likely_posted INTEGER,
                pos_top3_tags TEXT,
                pos_features_tags TEXT,
                pos_ambiance_tags TEXT,
                pos_newitems_tags TEXT,
                custom_food_tag TEXT,
                cons_tags TEXT,
                custom_cons_tag TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await db.execute(
            "CREATE INDEX IF NOT EXISTS idx_reviews_store_created ON generated_reviews (store_id, created_at)"
        )

        # Frontend and generation events; tags_used is a JSON array
        await db.execute("""
            CREATE TABLE IF NOT EXISTS generator_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                store_id TEXT,
                event_type TEXT NOT NULL,
                tags_used TEXT,
                review_id INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Per-IP daily generation counters
        await db.execute("""
            CREATE TABLE IF NOT EXISTS daily_usage (
                client_ip TEXT NOT NULL,
                day TEXT NOT NULL,
                generations INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (client_ip, day)
            )
        """)

        await db.commit()


async def insert_generated_review(
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
    """Persist a generated review."""
    async with aiosqlite.connect(_database_path) as db:
        cursor = await db.execute(
            """
            INSERT INTO generated_reviews
            (store_id, lang, variant, review_text, tags_used, cons_used, similarity, attempts, client_ip)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                store_id, lang, variant, review_text,
                ",".join(tags_used), ",".join(cons_used),
                similarity, attempts, client_ip,
            )
        )
        await db.commit()
        return cursor.lastrowid


async def update_review_confirmation(
    review_id: int,
    likely_posted: bool | None,
    columns: dict[str, str | None],
) -> int | None:
    """Apply confirm data; None values keep whatever is stored."""
    async with aiosqlite.connect(_database_path) as db:
        cursor = await db.execute(
            """
            UPDATE generated_reviews
            SET
                likely_posted     = COALESCE(?, likely_posted),
                pos_top3_tags     = COALESCE(?, pos_top3_tags),
                pos_features_tags = COALESCE(?, pos_features_tags),
                pos_ambiance_tags = COALESCE(?, pos_ambiance_tags),
                pos_newitems_tags = COALESCE(?, pos_newitems_tags),
                custom_food_tag   = COALESCE(?, custom_food_tag),
                cons_tags         = COALESCE(?, cons_tags),
                custom_cons_tag   = COALESCE(?, custom_cons_tag)
            WHERE id = ?
            """,
            (
                None if likely_posted is None else int(likely_posted),
                columns.get("pos_top3_tags"),
                columns.get("pos_features_tags"),
                columns.get("pos_ambiance_tags"),
                columns.get("pos_newitems_tags"),
                columns.get("custom_food_tag"),
                columns.get("cons_tags"),
                columns.get("custom_cons_tag"),
                review_id,
            )
        )
        await db.commit()
        return review_id if cursor.rowcount > 0 else None


async def get_recent_reviews(store_id: str, limit: int) -> list[str]:
    """Most recent review texts for a store, newest first."""
    async with aiosqlite.connect(_database_path) as db:
        cursor = await db.execute(
            """
            SELECT review_text FROM generated_reviews
            WHERE store_id = ?
            ORDER BY created_at DESC, id DESC
            LIMIT ?
            """,
            (store_id, limit)
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]


async def max_similarity(store_id: str, text: str, limit: int) -> tuple[float, str | None]:
    """Score text against the store's recent reviews."""
    recent = await get_recent_reviews(store_id, limit)
    if not recent:
        return 0.0, None
    return best_match(text, recent)


async def record_event(
    store_id: str | None,
    event_type: str,
    tags_used: list[str] | None = None,
    review_id: int | None = None,
) -> int:
    """Insert a generator event."""
    async with aiosqlite.connect(_database_path) as db:
        cursor = await db.execute(
            """
            INSERT INTO generator_events (store_id, event_type, tags_used, review_id)
            VALUES (?, ?, ?, ?)
            """,
            (
                store_id,
                event_type,
                json.dumps(tags_used, ensure_ascii=False) if tags_used is not None else None,
                review_id,
            )
        )
        await db.commit()
        return cursor.lastrowid


async def daily_funnel(days: int, store_id: str | None = None) -> list[dict]:
    """Per-day generated/clicked/posted counts since `days` days ago."""
    params: list = [f"-{int(days)} days"]
    store_filter = ""
    if store_id:
        store_filter = "AND r.store_id = ?"
        params.append(store_id)

    async with aiosqlite.connect(_database_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(
            f"""
            WITH first_clicks AS (
                SELECT review_id, MIN(created_at) AS clicked_at
                FROM generator_events
                WHERE event_type = 'click_google' AND review_id IS NOT NULL
                GROUP BY review_id
            )
            SELECT
                date(r.created_at) AS day,
                COUNT(*) AS generated_count,
                COUNT(fc.review_id) AS clicked_count,
                SUM(CASE WHEN r.likely_posted = 1 THEN 1 ELSE 0 END) AS posted_count,
                ROUND(100.0 * COUNT(fc.review_id) / COUNT(*), 1) AS click_rate_pct,
                ROUND(100.0 * SUM(CASE WHEN r.likely_posted = 1 THEN 1 ELSE 0 END) / COUNT(*), 1) AS posted_rate_pct,
                ROUND(AVG((julianday(fc.clicked_at) - julianday(r.created_at)) * 24.0), 2) AS avg_hours_to_click
            FROM generated_reviews r
            LEFT JOIN first_clicks fc ON fc.review_id = r.id
            WHERE date(r.created_at) >= date('now', ?)
            {store_filter}
            GROUP BY date(r.created_at)
            ORDER BY day ASC
            """,
            params
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]


async def tag_funnel(days: int, store_id: str | None = None) -> list[dict]:
    """Per-tag generate and click_google counts since `days` days ago."""
    params: list = [f"-{int(days)} days"]
    store_filter = ""
    if store_id:
        store_filter = "AND e.store_id = ?"
        params.append(store_id)

    async with aiosqlite.connect(_database_path) as db:
        db.row_factory = aiosqlite.Row
        cursor = await db.execute(
            f"""
            SELECT
                t.value AS tag,
                SUM(CASE WHEN e.event_type = 'generate' THEN 1 ELSE 0 END) AS generated_count,
                SUM(CASE WHEN e.event_type = 'click_google' THEN 1 ELSE 0 END) AS clicked_count
            FROM generator_events e, json_each(e.tags_used) t
            WHERE e.event_type IN ('generate', 'click_google')
              AND e.tags_used IS NOT NULL
              AND date(e.created_at) >= date('now', ?)
              {store_filter}
            GROUP BY t.value
            ORDER BY generated_count DESC, tag ASC
            """,
            params
        )
        rows = await cursor.fetchall()

    result = []
    for row in rows:
        generated = row["generated_count"] or 0
        clicked = row["clicked_count"] or 0
        result.append({
            "tag": row["tag"],
            "generated_count": generated,
            "clicked_count": clicked,
            "click_rate_pct": round(100.0 * clicked / generated, 1) if generated > 0 else None,
        })
    return result


async def get_daily_usage(client_ip: str, day: str) -> int:
    """Generations made by an IP on a day."""
    async with aiosqlite.connect(_database_path) as db:
        cursor = await db.execute(
            "SELECT generations FROM daily_usage WHERE client_ip = ? AND day = ?",
            (client_ip, day)
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0


async def increment_daily_usage(client_ip: str, day: str) -> int:
    """Count one generation for an IP; returns the new count."""
    async with aiosqlite.connect(_database_path) as db:
        await db.execute(
            """
            INSERT INTO daily_usage (client_ip, day, generations) VALUES (?, ?, 1)
            ON CONFLICT (client_ip, day) DO UPDATE SET generations = generations + 1
            """,
            (client_ip, day)
        )
        await db.commit()
        cursor = await db.execute(
            "SELECT generations FROM daily_usage WHERE client_ip = ? AND day = ?",
            (client_ip, day)
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0
