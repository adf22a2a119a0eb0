"""
Core FastAPI application for the review generator.

This module defines all API routes. It is cloud-provider agnostic.
Provider-specific implementations (database, config, clients) are
registered via the `registry` before the app starts handling requests.
"""
from fastapi import FastAPI, HTTPException, Request, Query
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
import time
import os

from shared import prompts, stores, webhooks
from shared.openai_client import GenerationError
from shared.reviews import (
    TTLCache, clamp_days, clamp_lengths, clean_tags, stable_key, tag_bucket_columns,
)
from shared.sheets import SheetConfigError
from shared.similarity import generate_distinct


# =============================================================================
# Provider Registry
# =============================================================================
# Providers (AWS/Netlify, local) register their implementations here before
# the app starts handling requests. This avoids importing provider-specific
# code in the shared layer.

class _ProviderRegistry:
    """Registry for provider-specific implementations."""

    def __init__(self):
        self._settings_fn = None      # callable() -> Settings
        self._database = None         # module implementing DatabaseProvider interface
        self._llm_client = None       # OpenAIClient instance
        self._sheet_client = None     # SheetClient instance
        self._webhooks_module = None  # shared.webhooks module

    def configure(
        self,
        settings_fn=None,
        database=None,
        llm_client=None,
        sheet_client=None,
        webhooks_module=None,
    ):
        """Register provider implementations. Only sets non-None values."""
        if settings_fn is not None:
            self._settings_fn = settings_fn
        if database is not None:
            self._database = database
        if llm_client is not None:
            self._llm_client = llm_client
        if sheet_client is not None:
            self._sheet_client = sheet_client
        if webhooks_module is not None:
            self._webhooks_module = webhooks_module

    def reset(self):
        """Forget all registered providers."""
        self.__init__()

    @property
    def settings(self):
        if self._settings_fn is None:
            raise RuntimeError("Settings provider not configured")
        return self._settings_fn()

    @property
    def database(self):
        if self._database is None:
            raise RuntimeError("Database provider not configured")
        return self._database

    @property
    def llm(self):
        if self._llm_client is None:
            raise RuntimeError("LLM client not configured")
        return self._llm_client

    @property
    def sheets(self):
        if self._sheet_client is None:
            raise RuntimeError("Sheet client not configured")
        return self._sheet_client

    @property
    def webhooks(self):
        return self._webhooks_module or webhooks


registry = _ProviderRegistry()


# Convenience accessors used by routes
def get_settings():
    return registry.settings


def get_database():
    return registry.database


def get_llm_client():
    return registry.llm


def get_sheet_client():
    return registry.sheets


def get_webhooks_module():
    return registry.webhooks


# =============================================================================
# App Configuration
# =============================================================================

# CORS config
ALLOWED_ORIGIN = os.environ.get('ALLOWED_ORIGIN', '*')

# Event types accepted by /api/track
TRACKED_EVENT_TYPES = {"view", "generate", "copy", "click_google", "confirm"}

STORE_CACHE_CONTROL = "public, max-age=60"

# Generated responses keyed by request parameters; per warm instance only
generation_cache = TTLCache()


# =============================================================================
# Request Helpers
# =============================================================================

def get_client_ip(request: Request) -> str:
    """Get client IP, accounting for Netlify and proxy forwarding."""
    netlify_ip = request.headers.get("x-nf-client-connection-ip")
    if netlify_ip:
        return netlify_ip.strip()
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def utc_today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


async def lookup_store_meta(storeid: str) -> dict:
    """Display name and place id for a store, falling back to the raw id."""
    fallback = {"name": storeid, "placeId": ""}
    sheets = get_sheet_client()
    if not sheets.configured:
        return fallback

    try:
        row = await sheets.fetch_store_row(storeid)
    except Exception as e:
        print(f"GENERATE: Store lookup failed for '{storeid}': {type(e).__name__}: {e}", flush=True)
        return fallback

    if not row:
        return fallback

    name = str(stores.pick_field(row, ["StoreName", "Name"])).strip()
    place_id = str(stores.pick_field(row, ["PlaceID", "GooglePlaceID"])).strip()
    return {"name": name or storeid, "placeId": place_id}


# =============================================================================
# FastAPI App
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler - DB init handled by provider."""
    yield


app = FastAPI(
    title="Review Generator",
    description="Short customer review generation for stores",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[ALLOWED_ORIGIN] if ALLOWED_ORIGIN != "*" else ["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    print(f"DEBUG: REQUEST START - {request.method} {request.url.path}", flush=True)
    try:
        response = await call_next(request)
        duration = time.time() - start_time
        print(f"DEBUG: REQUEST END - {request.method} {request.url.path} - Status: {response.status_code} - Duration: {duration:.2f}s", flush=True)
        return response
    except Exception as e:
        duration = time.time() - start_time
        print(f"DEBUG: REQUEST ERROR - {request.method} {request.url.path} - Error: {type(e).__name__}: {e} - Duration: {duration:.2f}s", flush=True)
        raise


# Errors are rendered as {"error": ...} for the frontend
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        status_code=400,
    )


# =============================================================================
# Request/Response Models
# =============================================================================

class GenerateRequest(BaseModel):
    storeid: str = ""
    selectedTags: list[str] = Field(default_factory=list)
    consTags: list[str] = Field(default_factory=list)   # negative tags
    variant: int = 0
    minChars: int | None = None
    maxChars: int | None = None
    lang: str = prompts.DEFAULT_LANG

    # Lenient parsing: malformed optional fields fall back to their defaults
    @field_validator("storeid", mode="before")
    @classmethod
    def _storeid_as_text(cls, value):
        return "" if value is None else str(value)

    @field_validator("selectedTags", "consTags", mode="before")
    @classmethod
    def _tags_or_empty(cls, value):
        if not isinstance(value, list):
            return []
        return [v if isinstance(v, str) else str(v) for v in value if v is not None]

    @field_validator("variant", mode="before")
    @classmethod
    def _variant_or_zero(cls, value):
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0

    @field_validator("minChars", "maxChars", mode="before")
    @classmethod
    def _length_or_default(cls, value):
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    @field_validator("lang", mode="before")
    @classmethod
    def _lang_as_text(cls, value):
        return value if isinstance(value, str) else prompts.DEFAULT_LANG


class ConfirmRequest(BaseModel):
    reviewId: Any = None
    likelyPosted: Any = None    # only applied when a real boolean
    tagBuckets: dict | None = None


class TrackEvent(BaseModel):
    store_id: str | int | None = None
    storeid: str | None = None
    event_type: str = ""
    tags_used: list[str] | None = None
    review_id: int | None = None


# =============================================================================
# Generate
# =============================================================================

@app.post("/api/generate")
async def generate_review(data: GenerateRequest, request: Request):
    """Generate a short review for a store, avoiding near-duplicates."""
    settings = get_settings()
    if not settings.openai_api_key:
        raise HTTPException(status_code=500, detail="Missing OPENAI_API_KEY")

    storeid = data.storeid.strip()
    if not storeid:
        raise HTTPException(status_code=400, detail="storeid required")

    tags = clean_tags(data.selectedTags)
    cons = clean_tags(data.consTags)
    lang = prompts.resolve_lang(data.lang)
    min_chars, max_chars = clamp_lengths(data.minChars, data.maxChars)

    cache_key = stable_key({
        "storeid": storeid, "selectedTags": tags, "consTags": cons,
        "minChars": min_chars, "maxChars": max_chars,
        "variant": data.variant, "lang": lang,
    })
    cached = generation_cache.get(cache_key)
    if cached is not None:
        print(f"GENERATE: Cache hit for store='{storeid}'", flush=True)
        return cached

    db = get_database()
    client_ip = get_client_ip(request)
    today = utc_today()

    if settings.daily_quota_per_ip > 0:
        used = await db.get_daily_usage(client_ip, today)
        if used >= settings.daily_quota_per_ip:
            print(f"GENERATE: Quota exceeded ip='{client_ip}' used={used}", flush=True)
            raise HTTPException(
                status_code=429,
                detail=f"Daily limit of {settings.daily_quota_per_ip} reviews reached. Please try again tomorrow."
            )

    meta = await lookup_store_meta(storeid)
    llm = get_llm_client()
    system_prompt = prompts.build_system_prompt(lang)

    async def attempt(previous_text):
        user_prompt = prompts.build_user_prompt(
            lang=lang,
            store_name=meta["name"],
            store_id=storeid,
            tags=tags,
            cons=cons,
            variant=data.variant,
            min_chars=min_chars,
            max_chars=max_chars,
            avoid_text=previous_text,
        )
        return await llm.complete(system_prompt, user_prompt)

    async def score(text):
        return await db.max_similarity(storeid, text, settings.dedup_recent_limit)

    try:
        result = await generate_distinct(
            attempt,
            score,
            threshold=settings.similarity_threshold,
            max_retries=settings.dedup_max_retries,
        )
    except GenerationError as e:
        print(f"GENERATE: Upstream failure for store='{storeid}': {e}", flush=True)
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        print(f"GENERATE: Error for store='{storeid}': {type(e).__name__}: {e}", flush=True)
        raise HTTPException(status_code=500, detail=str(e))

    try:
        review_id = await db.insert_generated_review(
            store_id=storeid,
            review_text=result.text,
            lang=lang,
            variant=data.variant,
            tags_used=tags,
            cons_used=cons,
            similarity=result.similarity,
            attempts=result.attempts,
            client_ip=client_ip,
        )
        await db.record_event(storeid, "generate", tags_used=tags, review_id=review_id)
        if settings.daily_quota_per_ip > 0:
            await db.increment_daily_usage(client_ip, today)
    except Exception as e:
        print(f"GENERATE: Failed to persist review for store='{storeid}': {type(e).__name__}: {e}", flush=True)
        raise HTTPException(status_code=500, detail=str(e))

    response = {
        "reviewId": review_id,
        "reviewText": result.text,
        "store": {"name": meta["name"], "placeId": meta["placeId"]},
        "usage": result.usage,
        "latencyMs": result.latency_ms,
        "similarity": round(result.similarity, 3),
        "attempts": result.attempts,
        "duplicate": result.duplicate,
        "meta": {
            "variant": data.variant,
            "minChars": min_chars,
            "maxChars": max_chars,
            "tags": tags,
            "consTags": cons,
            "lang": lang,
        },
    }
    print(f"GENERATE: store='{storeid}' review={review_id} attempts={result.attempts} similarity={result.similarity:.2f} duplicate={result.duplicate}", flush=True)

    await get_webhooks_module().notify(
        settings.webhook_url_list,
        "review.generated",
        {
            "reviewId": review_id,
            "storeid": storeid,
            "storeName": meta["name"],
            "lang": lang,
            "reviewText": result.text,
            "tags": tags,
            "consTags": cons,
        },
    )

    generation_cache.set(cache_key, response, settings.cache_ttl_seconds)
    return response


# =============================================================================
# Confirm
# =============================================================================

@app.post("/api/confirm")
async def confirm_review(data: ConfirmRequest):
    """Record that a generated review was (likely) posted, plus its tag buckets."""
    raw_id = data.reviewId
    if not raw_id:
        raise HTTPException(status_code=400, detail="reviewId is required")
    # true would otherwise become review 1
    if isinstance(raw_id, bool) or (isinstance(raw_id, float) and not raw_id.is_integer()):
        raise HTTPException(status_code=400, detail="reviewId must be an integer")
    try:
        review_id = int(raw_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="reviewId must be an integer")

    likely_posted = data.likelyPosted if isinstance(data.likelyPosted, bool) else None
    columns = tag_bucket_columns(data.tagBuckets)

    db = get_database()
    try:
        updated = await db.update_review_confirmation(review_id, likely_posted, columns)
    except Exception as e:
        print(f"CONFIRM: Error updating review {review_id}: {type(e).__name__}: {e}", flush=True)
        raise HTTPException(status_code=500, detail=str(e))

    print(f"CONFIRM: review={review_id} likely_posted={likely_posted} updated={updated}", flush=True)
    return {"ok": True, "updatedId": updated}


# =============================================================================
# Funnel Metrics
# =============================================================================

@app.get("/api/funnel")
async def funnel(
    days: str | None = Query(None),
    storeid: str | None = Query(None),
):
    """Daily generated -> clicked -> posted counts."""
    db = get_database()
    try:
        return await db.daily_funnel(clamp_days(days), (storeid or "").strip() or None)
    except Exception as e:
        print(f"FUNNEL: Error: {type(e).__name__}: {e}", flush=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


@app.get("/api/tag_funnel")
async def tag_funnel(
    days: str | None = Query(None),
    storeid: str | None = Query(None),
):
    """Per-tag generated and click-through counts."""
    db = get_database()
    try:
        return await db.tag_funnel(clamp_days(days), (storeid or "").strip() or None)
    except Exception as e:
        print(f"FUNNEL: Tag funnel error: {type(e).__name__}: {e}", flush=True)
        raise HTTPException(status_code=500, detail="Internal Server Error")


# =============================================================================
# Store Metadata
# =============================================================================

@app.get("/api/store")
async def get_store(
    request: Request,
    storeid: str | None = Query(None),
    store: str | None = Query(None),
):
    """Store branding, tag lists and photo URLs from the store sheet."""
    # Every /api/store response, errors included, carries the same Cache-Control
    cache_headers = {"Cache-Control": STORE_CACHE_CONTROL}

    wanted = (store or storeid or "").strip()
    if not wanted:
        raise HTTPException(status_code=400, detail="Missing storeid", headers=cache_headers)

    sheets = get_sheet_client()
    try:
        row = await sheets.fetch_store_row(wanted)
    except SheetConfigError as e:
        raise HTTPException(status_code=500, detail=str(e), headers=cache_headers)
    except Exception as e:
        print(f"STORE: Sheet fetch failed: {type(e).__name__}: {e}", flush=True)
        raise HTTPException(status_code=500, detail=str(e), headers=cache_headers)

    if not row:
        raise HTTPException(status_code=404, detail=f"StoreID not found: {wanted}", headers=cache_headers)

    payload = stores.normalize_row_to_store(row, request.headers)
    payload = await stores.resolve_place_photo(payload)

    return JSONResponse(payload, headers=cache_headers)


# =============================================================================
# Event Tracking
# =============================================================================

@app.post("/api/track")
async def track_event(data: TrackEvent):
    """Record a frontend event (view, copy, click through to Google, ...)."""
    event_type = data.event_type.strip()
    if not event_type:
        raise HTTPException(status_code=400, detail="event_type is required")
    if event_type not in TRACKED_EVENT_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown event_type: {event_type}")

    store_id = data.storeid if data.storeid is not None else data.store_id
    store_id = str(store_id).strip() if store_id is not None else None

    db = get_database()
    try:
        await db.record_event(
            store_id or None,
            event_type,
            tags_used=clean_tags(data.tags_used) if data.tags_used is not None else None,
            review_id=data.review_id,
        )
    except Exception as e:
        print(f"TRACK: Error recording '{event_type}': {type(e).__name__}: {e}", flush=True)
        raise HTTPException(status_code=500, detail=str(e))

    return {"ok": True}


# =============================================================================
# Health Check
# =============================================================================

@app.get("/api/health")
def health_check():
    """Health check endpoint - no dependencies, fastest possible response."""
    return {"status": "healthy", "service": "review-generator"}
