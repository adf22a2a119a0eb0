"""
Tests for the Postgres provider with the connection replaced by a recorder,
so the query parameters and row mapping are checked without a server.
"""
import pytest

from providers.postgres import database as pg_database

from conftest import run


class RecordingCursor:
    def __init__(self, rows):
        self.rows = rows

    async def fetchone(self):
        return self.rows[0] if self.rows else None

    async def fetchall(self):
        return list(self.rows)


class RecordingConnection:
    def __init__(self, results=None):
        self.results = list(results or [])
        self.executed = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, params=None):
        self.executed.append((" ".join(sql.split()), params))
        return RecordingCursor(self.results.pop(0) if self.results else [])


@pytest.fixture
def conn(monkeypatch):
    recorder = RecordingConnection()

    async def connect():
        return recorder

    monkeypatch.setattr(pg_database, "_connect", connect)
    return recorder


@pytest.fixture(autouse=True)
def reset_url():
    yield
    pg_database.configure("")


# =============================================================================
# configure
# =============================================================================

def test_configure_requires_tls_on_urls():
    pg_database.configure("postgresql://user:pw@db.example.com:5432/postgres")
    assert pg_database._database_url == "postgresql://user:pw@db.example.com:5432/postgres?sslmode=require"

    pg_database.configure("postgres://db.example.com/postgres?application_name=reviews")
    assert pg_database._database_url == "postgres://db.example.com/postgres?application_name=reviews&sslmode=require"


def test_configure_keeps_explicit_sslmode():
    pg_database.configure("postgresql://db.example.com/postgres?sslmode=disable")
    assert pg_database._database_url == "postgresql://db.example.com/postgres?sslmode=disable"


def test_configure_leaves_keyword_dsn_alone():
    pg_database.configure("host=db.example.com dbname=postgres user=app")
    assert pg_database._database_url == "host=db.example.com dbname=postgres user=app"


def test_connect_without_url_fails():
    pg_database.configure("")
    with pytest.raises(RuntimeError, match="not configured"):
        run(pg_database._connect())


# =============================================================================
# Queries
# =============================================================================

def test_init_db_enables_trigrams(conn):
    run(pg_database.init_db())

    statements = [sql for sql, _ in conn.executed]
    assert statements[0] == "CREATE EXTENSION IF NOT EXISTS pg_trgm"
    assert any("CREATE TABLE IF NOT EXISTS daily_usage" in sql for sql in statements)


def test_insert_generated_review_joins_tags(conn):
    conn.results = [[{"id": 17}]]

    review_id = run(pg_database.insert_generated_review(
        "demo", "湯頭濃郁", "zh", 1, ["牛肉麵", "滷味"], ["排隊久"], 0.12, 2, client_ip="203.0.113.9",
    ))

    assert review_id == 17
    _, params = conn.executed[0]
    assert params == ("demo", "zh", 1, "湯頭濃郁", "牛肉麵,滷味", "排隊久", 0.12, 2, "203.0.113.9")


def test_update_review_confirmation_param_order(conn):
    conn.results = [[{"id": 5}]]
    columns = {
        "pos_top3_tags": "牛肉麵",
        "pos_features_tags": "",
        "pos_ambiance_tags": None,
        "pos_newitems_tags": "",
        "custom_food_tag": "酸辣湯",
        "cons_tags": "排隊久",
        "custom_cons_tag": None,
    }

    assert run(pg_database.update_review_confirmation(5, True, columns)) == 5

    _, params = conn.executed[0]
    assert params == (True, "牛肉麵", "", None, "", "酸辣湯", "排隊久", None, 5)


def test_update_review_confirmation_no_row(conn):
    assert run(pg_database.update_review_confirmation(99, None, {})) is None


def test_max_similarity_uses_database_score(conn):
    conn.results = [[{"review_text": "湯頭濃郁", "score": 0.71}]]

    assert run(pg_database.max_similarity("demo", "湯頭濃郁好喝", 30)) == (0.71, "湯頭濃郁")

    sql, params = conn.executed[0]
    assert "similarity(review_text, %s)" in sql
    assert params == ("湯頭濃郁好喝", "demo", 30)


def test_max_similarity_without_history(conn):
    assert run(pg_database.max_similarity("demo", "anything", 30)) == (0.0, None)


def test_record_event_passes_tag_array(conn):
    conn.results = [[{"id": 3}]]

    assert run(pg_database.record_event("demo", "generate", ["牛肉麵"], review_id=8)) == 3
    assert conn.executed[0][1] == ("demo", "generate", ["牛肉麵"], 8)


def test_funnels_pass_days_and_store_filter(conn):
    conn.results = [
        [{"day": "2026-01-01", "generated_count": 2}],
        [{"tag": "牛肉麵", "generated_count": 2, "clicked_count": 1, "click_rate_pct": 50.0}],
    ]

    assert run(pg_database.daily_funnel(7, "demo")) == [{"day": "2026-01-01", "generated_count": 2}]
    assert run(pg_database.tag_funnel(30)) == [
        {"tag": "牛肉麵", "generated_count": 2, "clicked_count": 1, "click_rate_pct": 50.0},
    ]

    daily_sql, daily_params = conn.executed[0]
    tag_sql, tag_params = conn.executed[1]
    assert daily_params == (7, "demo", "demo")
    assert "unnest(tags_used)" in tag_sql
    assert tag_params == (30, None, None)


def test_daily_usage_counter(conn):
    conn.results = [[], [{"generations": 4}]]

    assert run(pg_database.get_daily_usage("203.0.113.9", "2026-01-01")) == 0
    assert run(pg_database.increment_daily_usage("203.0.113.9", "2026-01-01")) == 4

    sql, params = conn.executed[1]
    assert "ON CONFLICT (client_ip, day) DO UPDATE" in sql
    assert params == ("203.0.113.9", "2026-01-01")
