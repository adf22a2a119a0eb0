"""
Google Places helpers for store photos. Cloud-agnostic.

Photo URLs embed the API key, so they are only built when a key is
configured. Place Details lookups are best-effort: any failure yields "".
"""
from urllib.parse import quote

import httpx

# API key - set by provider via configure()
_api_key: str = ""
_transport: httpx.AsyncBaseTransport | None = None

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
PLACE_PHOTO_MAX_WIDTH = 1000


def configure(api_key: str, transport: httpx.AsyncBaseTransport | None = None):
    """Configure the Places helpers with a Maps API key."""
    global _api_key, _transport
    _api_key = api_key or ""
    _transport = transport


def is_configured() -> bool:
    return bool(_api_key)


def build_photo_url(photo_reference: str) -> str:
    """Place Photo URL for a photo reference, or "" without a reference or key."""
    if not photo_reference or not _api_key:
        return ""
    return (
        f"{PLACES_BASE_URL}/photo?maxwidth={PLACE_PHOTO_MAX_WIDTH}"
        f"&photo_reference={quote(photo_reference, safe='')}"
        f"&key={quote(_api_key, safe='')}"
    )


async def first_photo_reference(place_id: str) -> str:
    """Look up the first photo reference of a place via Place Details."""
    if not place_id or not _api_key:
        return ""

    try:
        async with httpx.AsyncClient(transport=_transport) as client:
            response = await client.get(
                f"{PLACES_BASE_URL}/details/json",
                params={"place_id": place_id, "fields": "photos", "key": _api_key},
                timeout=10.0
            )
            response.raise_for_status()
            data = response.json()
            photos = (data.get("result") or {}).get("photos") or []
            if not photos:
                return ""
            return photos[0].get("photo_reference") or ""
    except Exception as e:
        print(f"PLACES: Place Details lookup failed for {place_id}: {e}", flush=True)
        return ""
