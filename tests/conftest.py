"""
Shared fixtures: a SQLite-backed registry with fake LLM, sheet and webhook
providers, and a TestClient around the shared app.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient

import shared.places as places
from providers.sqlite import database as sqlite_database
from shared import app as app_module
from shared.app import app, registry
from shared.config import Settings
from shared.openai_client import Completion
from shared.sheets import find_store_row, parse_csv, rows_to_objects

SAMPLE_CSV = (
    "StoreID,StoreName,PlaceID,LOGO,Hero圖片,AD,AE,top3,features,ambiance,newItems,top3En,consEn,AG,placePhotoRef\n"
    'demo,小巷麵館,ChIJ123,https://drive.google.com/file/d/abc123/view?usp=sharing,/assets/hero.jpg,#0055aa,#ffffff,'
    '"牛肉麵、滷味，牛肉麵",親切；乾淨,"安靜, 明亮",,"Beef noodles, Braised tofu",Long queue,太吵;排隊久,\n'
    "cafe,Corner Cafe,ChIJ999,,,,,Latte,,,,,,,REF42\n"
)


def sample_rows() -> list[dict]:
    return rows_to_objects(parse_csv(SAMPLE_CSV))


# Mutually dissimilar texts so unscripted calls never trip duplicate suppression
FALLBACK_TEXTS = [
    "Quiet corner seat with warm jasmine tea.",
    "牛肉麵湯頭濃郁，麵條很有嚼勁。",
    "カウンター席から調理の様子が見えて楽しい。",
    "직원분들이 친절하고 매장이 깨끗해요.",
    "Croissant feuilleté, café serré, service rapide.",
    "Tapas sabrosas y ambiente animado por la noche.",
    "滷味入味，小菜份量剛好。",
    "Fresh bagels, crunchy crust, generous cream cheese.",
]


class FakeLLM:
    """Returns scripted texts in order, then the fallback texts."""

    def __init__(self, texts=None, error=None):
        self.texts = list(texts or [])
        self.error = error
        self.calls = []

    async def complete(self, system, user):
        self.calls.append((system, user))
        if self.error is not None:
            raise self.error
        text = self.texts.pop(0) if self.texts else FALLBACK_TEXTS[(len(self.calls) - 1) % len(FALLBACK_TEXTS)]
        return Completion(
            text=text,
            usage={"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
            latency_ms=5,
        )


class FakeSheets:
    def __init__(self, rows=None, configured=True, error=None):
        self.rows = rows if rows is not None else sample_rows()
        self.configured = configured
        self.error = error
        self.lookups = []

    async def fetch_store_row(self, storeid):
        self.lookups.append(storeid)
        if self.error is not None:
            raise self.error
        return find_store_row(self.rows, storeid)


class FakeWebhooks:
    def __init__(self):
        self.sent = []

    async def notify(self, urls, event, data):
        self.sent.append((urls, event, data))
        return len(urls)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def db(tmp_path):
    sqlite_database.configure(tmp_path / "reviews.db")
    run(sqlite_database.init_db())
    return sqlite_database


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="sk-test",
        database_url="",
        google_maps_api_key="",
        daily_quota_per_ip=5,
        similarity_threshold=0.6,
        dedup_recent_limit=30,
        dedup_max_retries=2,
        cache_ttl_seconds=45,
        webhook_urls="https://hooks.example.com/a, https://hooks.example.com/b",
    )


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def sheets():
    return FakeSheets()


@pytest.fixture
def hooks():
    return FakeWebhooks()


@pytest.fixture
def client(settings, db, llm, sheets, hooks):
    registry.reset()
    registry.configure(
        settings_fn=lambda: settings,
        database=db,
        llm_client=llm,
        sheet_client=sheets,
        webhooks_module=hooks,
    )
    app_module.generation_cache.clear()
    places.configure("")
    with TestClient(app) as test_client:
        yield test_client
    registry.reset()
    app_module.generation_cache.clear()
