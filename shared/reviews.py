"""
Request helpers shared by the review endpoints.
"""
from __future__ import annotations

import json
import time

MIN_CHARS_FLOOR = 40
DEFAULT_MIN_CHARS = 80
DEFAULT_MAX_CHARS = 180
MIN_LENGTH_SPREAD = 10

DEFAULT_DAYS = 30
MAX_DAYS = 365

# tagBuckets key -> generated_reviews column
LIST_BUCKET_COLUMNS = {
    "posTop3": "pos_top3_tags",
    "posFeatures": "pos_features_tags",
    "posAmbiance": "pos_ambiance_tags",
    "posNewItems": "pos_newitems_tags",
    "cons": "cons_tags",
}
TEXT_BUCKET_COLUMNS = {
    "customFood": "custom_food_tag",
    "customCons": "custom_cons_tag",
}


def clamp_lengths(min_chars: int | None, max_chars: int | None) -> tuple[int, int]:
    """Apply the length floor and make sure max is at least 10 above min."""
    low = max(MIN_CHARS_FLOOR, min_chars or DEFAULT_MIN_CHARS)
    high = max(low + MIN_LENGTH_SPREAD, max_chars or DEFAULT_MAX_CHARS)
    return low, high


def clamp_days(raw) -> int:
    """Parse a ?days= value, falling back to 30 outside 1..365."""
    try:
        days = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_DAYS
    if days <= 0 or days > MAX_DAYS:
        return DEFAULT_DAYS
    return days


def join_tags(value) -> str | None:
    """Lists become comma-joined strings; None stays None."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def tag_bucket_columns(tag_buckets: dict | None) -> dict[str, str | None]:
    """
    Map a confirm payload's tagBuckets onto generated_reviews columns.

    A missing list bucket counts as an empty list and clears its column;
    an explicit None leaves the column untouched. Custom text buckets are
    None (untouched) when null or empty.
    """
    buckets = tag_buckets or {}
    columns: dict[str, str | None] = {}
    for key, column in LIST_BUCKET_COLUMNS.items():
        columns[column] = join_tags(buckets.get(key, []))
    for key, column in TEXT_BUCKET_COLUMNS.items():
        value = buckets.get(key)
        columns[column] = None if value is None or value == "" else str(value)
    return columns


def clean_tags(tags) -> list[str]:
    """Trim tags, drop empties and duplicates, keep order."""
    result = []
    seen = set()
    for tag in tags or []:
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def stable_key(data: dict) -> str:
    return json.dumps(data, sort_keys=True, ensure_ascii=False)


class TTLCache:
    """
    Small per-instance response cache.

    Only lives as long as a warm function instance, so it is an
    optimisation for rapid repeat clicks and nothing relies on it.
    """

    def __init__(self, max_entries: int = 256):
        self._entries: dict[str, tuple[float, object]] = {}
        self.max_entries = max_entries

    def get(self, key: str):
        hit = self._entries.get(key)
        if hit is None:
            return None
        expires_at, value = hit
        if time.time() > expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        if len(self._entries) >= self.max_entries:
            self._evict()
        self._entries[key] = (time.time() + ttl_seconds, value)

    def clear(self) -> None:
        self._entries.clear()

    def _evict(self) -> None:
        now = time.time()
        for key in [k for k, (exp, _) in self._entries.items() if exp < now]:
            del self._entries[key]
        while len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]
