"""
Database operations using Postgres (Supabase) via psycopg 3.
Implements the DatabaseProvider interface from shared.database.

Near-duplicate scoring runs in the database with pg_trgm's similarity().
"""
from __future__ import annotations

import psycopg
from psycopg.rows import dict_row

# Connection URL - set by provider via configure()
_database_url: str = ""


def configure(database_url: str):
    """Configure the Postgres connection URL (Supabase requires TLS).

    Key=value DSNs are used as given; only URLs get sslmode appended.
    """
    global _database_url
    url = (database_url or "").strip()
    if url.startswith(("postgres://", "postgresql://")) and "sslmode=" not in url:
        url += ("&" if "?" in url else "?") + "sslmode=require"
    _database_url = url


async def _connect() -> psycopg.AsyncConnection:
    if not _database_url:
        raise RuntimeError("Postgres database URL not configured")
    return await psycopg.AsyncConnection.connect(
        _database_url, autocommit=True, row_factory=dict_row
    )


async def init_db():
    """Initialize the database with required tables."""
    async with await _connect() as conn:
        await conn.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS generated_reviews (
                id BIGSERIAL PRIMARY KEY,
                store_id TEXT NOT NULL,
                lang TEXT,
                variant INTEGER,
                review_text TEXT NOT NULL,
                tags_used TEXT,
                cons_used TEXT,
                similarity REAL,
                attempts INTEGER,
                client_ip TEXT,
                likely_posted BOOLEAN,
                pos_top3_tags TEXT,
                pos_features_tags TEXT,
                pos_ambiance_tags TEXT,
                pos_newitems_tags TEXT,
                custom_food_tag TEXT,
                cons_tags TEXT,
                custom_cons_tag TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_reviews_store_created ON generated_reviews (store_id, created_at DESC)"
        )
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS generator_events (
                id BIGSERIAL PRIMARY KEY,
                store_id TEXT,
                event_type TEXT NOT NULL,
                tags_used TEXT[],
                review_id BIGINT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS daily_usage (
                client_ip TEXT NOT NULL,
                day DATE NOT NULL,
                generations INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (client_ip, day)
            )
        """)
    print("DEBUG: Postgres schema ready", flush=True)


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
    async with await _connect() as conn:
        cursor = await conn.execute(
            """
            INSERT INTO generated_reviews
            (store_id, lang, variant, review_text, tags_used, cons_used, similarity, attempts, client_ip)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                store_id, lang, variant, review_text,
                ",".join(tags_used), ",".join(cons_used),
                similarity, attempts, client_ip,
            )
        )
        row = await cursor.fetchone()
        return row["id"]


async def update_review_confirmation(
    review_id: int,
    likely_posted: bool | None,
    columns: dict[str, str | None],
) -> int | None:
    """Apply confirm data; None values keep whatever is stored."""
    async with await _connect() as conn:
        cursor = await conn.execute(
            """
            UPDATE generated_reviews
            SET
                likely_posted     = COALESCE(%s, likely_posted),
                pos_top3_tags     = COALESCE(%s, pos_top3_tags),
                pos_features_tags = COALESCE(%s, pos_features_tags),
                pos_ambiance_tags = COALESCE(%s, pos_ambiance_tags),
                pos_newitems_tags = COALESCE(%s, pos_newitems_tags),
                custom_food_tag   = COALESCE(%s, custom_food_tag),
                cons_tags         = COALESCE(%s, cons_tags),
                custom_cons_tag   = COALESCE(%s, custom_cons_tag)
            WHERE id = %s
            RETURNING id
            """,
            (
                likely_posted,
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
        row = await cursor.fetchone()
        return row["id"] if row else None


async def max_similarity(store_id: str, text: str, limit: int) -> tuple[float, str | None]:
    """Trigram similarity of text against the store's recent reviews."""
    async with await _connect() as conn:
        cursor = await conn.execute(
            """
            SELECT review_text, similarity(review_text, %s) AS score
            FROM (
                SELECT review_text FROM generated_reviews
                WHERE store_id = %s
                ORDER BY created_at DESC
                LIMIT %s
            ) recent
            ORDER BY score DESC
            LIMIT 1
            """,
            (text, store_id, limit)
        )
        row = await cursor.fetchone()
        if not row:
            return 0.0, None
        return float(row["score"] or 0.0), row["review_text"]


async def record_event(
    store_id: str | None,
    event_type: str,
    tags_used: list[str] | None = None,
    review_id: int | None = None,
) -> int:
    """Insert a generator event."""
    async with await _connect() as conn:
        cursor = await conn.execute(
            """
            INSERT INTO generator_events (store_id, event_type, tags_used, review_id)
            VALUES (%s, %s, %s, %s)
            RETURNING id
            """,
            (store_id, event_type, tags_used, review_id)
        )
        row = await cursor.fetchone()
        return row["id"]


async def daily_funnel(days: int, store_id: str | None = None) -> list[dict]:
    """Per-day generated/clicked/posted counts since `days` days ago."""
    async with await _connect() as conn:
        cursor = await conn.execute(
            """
            WITH first_clicks AS (
                SELECT review_id, min(created_at) AS clicked_at
                FROM generator_events
                WHERE event_type = 'click_google' AND review_id IS NOT NULL
                GROUP BY review_id
            )
            SELECT
                r.created_at::date AS day,
                count(*)::int AS generated_count,
                count(fc.review_id)::int AS clicked_count,
                (count(*) FILTER (WHERE r.likely_posted))::int AS posted_count,
                round(100.0 * count(fc.review_id) / count(*), 1)::float AS click_rate_pct,
                round(100.0 * count(*) FILTER (WHERE r.likely_posted) / count(*), 1)::float AS posted_rate_pct,
                round((avg(extract(epoch FROM fc.clicked_at - r.created_at)) / 3600.0)::numeric, 2)::float AS avg_hours_to_click
            FROM generated_reviews r
            LEFT JOIN first_clicks fc ON fc.review_id = r.id
            WHERE r.created_at >= current_date - %s::int
              AND (%s::text IS NULL OR r.store_id = %s::text)
            GROUP BY r.created_at::date
            ORDER BY day ASC
            """,
            (days, store_id, store_id)
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]


async def tag_funnel(days: int, store_id: str | None = None) -> list[dict]:
    """Per-tag generate and click_google counts since `days` days ago."""
    async with await _connect() as conn:
        cursor = await conn.execute(
            """
            WITH tag_events AS (
                SELECT
                    unnest(tags_used) AS tag,
                    CASE WHEN event_type = 'generate' THEN 1 ELSE 0 END AS generated_count,
                    CASE WHEN event_type = 'click_google' THEN 1 ELSE 0 END AS clicked_count
                FROM generator_events
                WHERE created_at >= current_date - %s::int
                  AND event_type IN ('generate', 'click_google')
                  AND tags_used IS NOT NULL
                  AND (%s::text IS NULL OR store_id = %s::text)
            )
            SELECT
                tag,
                sum(generated_count)::int AS generated_count,
                sum(clicked_count)::int AS clicked_count,
                CASE
                    WHEN sum(generated_count) > 0
                        THEN round(100.0 * sum(clicked_count) / sum(generated_count), 1)::float
                    ELSE NULL
                END AS click_rate_pct
            FROM tag_events
            GROUP BY tag
            ORDER BY sum(generated_count) DESC, tag ASC
            """,
            (days, store_id, store_id)
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]


async def get_daily_usage(client_ip: str, day: str) -> int:
    """Generations made by an IP on a day."""
    async with await _connect() as conn:
        cursor = await conn.execute(
            "SELECT generations FROM daily_usage WHERE client_ip = %s AND day = %s::date",
            (client_ip, day)
        )
        row = await cursor.fetchone()
        return int(row["generations"]) if row else 0


async def increment_daily_usage(client_ip: str, day: str) -> int:
    """Count one generation for an IP atomically; returns the new count."""
    async with await _connect() as conn:
        cursor = await conn.execute(
            """
            INSERT INTO daily_usage (client_ip, day, generations) VALUES (%s, %s::date, 1)
            ON CONFLICT (client_ip, day) DO UPDATE SET generations = daily_usage.generations + 1
            RETURNING generations
            """,
            (client_ip, day)
        )
        row = await cursor.fetchone()
        return int(row["generations"])
