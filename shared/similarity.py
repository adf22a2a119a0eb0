"""
Near-duplicate suppression for generated reviews.

Reviews are a sentence or two, often in CJK text with no word boundaries,
so similarity is measured on character bigrams rather than words.
"""
from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

# Whitespace and punctuation carry no signal for duplicate detection
_STRIP_RE = re.compile(r"[\s\W_]+", re.UNICODE)


def normalize_text(text: str) -> str:
    text = unicodedata.normalize("NFKC", text or "").lower()
    return _STRIP_RE.sub("", text)


def _bigrams(text: str) -> list[str]:
    return [text[i:i + 2] for i in range(len(text) - 1)]


def text_similarity(a: str, b: str) -> float:
    """Dice coefficient over character bigrams, in [0, 1]."""
    a = normalize_text(a)
    b = normalize_text(b)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0

    counts: dict[str, int] = {}
    for gram in _bigrams(a):
        counts[gram] = counts.get(gram, 0) + 1

    overlap = 0
    b_grams = _bigrams(b)
    for gram in b_grams:
        if counts.get(gram, 0) > 0:
            counts[gram] -= 1
            overlap += 1

    return 2.0 * overlap / (len(a) - 1 + len(b_grams))


def best_match(text: str, candidates: list[str]) -> tuple[float, Optional[str]]:
    """Return (score, candidate) for the most similar candidate."""
    best_score, best_text = 0.0, None
    for candidate in candidates:
        score = text_similarity(text, candidate)
        if best_text is None or score > best_score:
            best_score, best_text = score, candidate
    return best_score, best_text


@dataclass
class DedupResult:
    """Outcome of the regenerate-until-distinct loop."""
    text: str
    similarity: float
    attempts: int
    duplicate: bool          # True when every attempt stayed above the threshold
    usage: dict
    latency_ms: int          # summed over all attempts


async def generate_distinct(
    generate: Callable[[Optional[str]], Awaitable],
    score: Callable[[str], Awaitable[tuple[float, Optional[str]]]],
    threshold: float,
    max_retries: int,
) -> DedupResult:
    """
    Generate text until it is sufficiently different from stored history.

    `generate(previous)` returns a completion (text, usage, latency_ms);
    `previous` is None on the first attempt and the most similar stored text
    on retries, so the caller can steer away from it. `score(text)` returns
    (similarity, matched_text). At most 1 + max_retries completions are made;
    when all of them exceed the threshold the least similar one is kept.
    """
    best = None
    best_score = 0.0
    previous = None
    usage: dict = {}
    latency_ms = 0
    attempts = 0

    for _ in range(max(0, max_retries) + 1):
        attempts += 1
        completion = await generate(previous)
        latency_ms += completion.latency_ms
        for key, value in (completion.usage or {}).items():
            if isinstance(value, (int, float)):
                usage[key] = usage.get(key, 0) + value

        similarity, matched = await score(completion.text)
        if best is None or similarity < best_score:
            best, best_score = completion, similarity

        if similarity < threshold:
            return DedupResult(completion.text, similarity, attempts, False, usage, latency_ms)

        print(f"GENERATE: attempt {attempts} too similar ({similarity:.2f} >= {threshold:.2f}), retrying", flush=True)
        previous = matched

    return DedupResult(best.text, best_score, attempts, True, usage, latency_ms)
