"""
Outbound webhook fan-out. Cloud-agnostic.

Each configured URL receives the same JSON envelope. Delivery is
best-effort: failures are logged and reported, never raised.
"""
import asyncio
from datetime import datetime, timezone

import httpx

WEBHOOK_TIMEOUT_SECONDS = 5.0


async def _post(client: httpx.AsyncClient, url: str, envelope: dict) -> bool:
    try:
        response = await client.post(url, json=envelope, timeout=WEBHOOK_TIMEOUT_SECONDS)
        response.raise_for_status()
        return True
    except Exception as e:
        print(f"WEBHOOK: Delivery to {url} failed: {type(e).__name__}: {e}", flush=True)
        return False


async def notify(
    urls: list[str],
    event: str,
    data: dict,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """POST an event to every URL concurrently. Returns the number delivered."""
    if not urls:
        return 0

    envelope = {
        "event": event,
        "sent_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }
    async with httpx.AsyncClient(transport=transport) as client:
        results = await asyncio.gather(*[_post(client, url, envelope) for url in urls])

    delivered = sum(1 for ok in results if ok)
    print(f"WEBHOOK: '{event}' delivered to {delivered}/{len(urls)} endpoints", flush=True)
    return delivered
