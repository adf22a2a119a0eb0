"""
Google Sheets access for store configuration. Cloud-agnostic.

The store sheet is read as CSV, either from a published CSV URL or from the
GViz CSV export of a sheet tab. Every row is keyed both by its original
header and by the lower-cased header so lookups tolerate header casing.
"""
import csv
import io
from urllib.parse import quote

import httpx

GVIZ_CSV_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:csv&sheet={sheet_name}"


class SheetConfigError(Exception):
    """Raised when no sheet source is configured."""


def parse_csv(text: str) -> list[list[str]]:
    """Parse CSV text (quoted fields may contain commas and newlines)."""
    return list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))


def rows_to_objects(rows: list[list[str]]) -> list[dict]:
    """Turn a header row plus data rows into dicts keyed by header and lower-case header."""
    if not rows:
        return []
    headers = [(h or "").strip() for h in rows[0]]
    objects = []
    for row in rows[1:]:
        obj = {}
        for i, header in enumerate(headers):
            value = row[i] if i < len(row) else ""
            obj[header] = value
            obj[header.lower()] = value
        objects.append(obj)
    return objects


def find_store_row(objects: list[dict], storeid: str) -> dict | None:
    """Case-insensitive StoreID match."""
    wanted = storeid.strip().lower()
    for obj in objects:
        current = str(obj.get("StoreID") or obj.get("storeid") or "").strip().lower()
        if current and current == wanted:
            return obj
    return None


class SheetClient:
    def __init__(
        self,
        csv_url: str = "",
        sheet_id: str = "",
        sheet_name: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.csv_url = csv_url
        self.sheet_id = sheet_id
        self.sheet_name = sheet_name
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.csv_url or self.sheet_id)

    def source_url(self) -> str:
        if self.csv_url:
            return self.csv_url
        if not self.sheet_id:
            raise SheetConfigError("Missing SHEET_CSV_URL or SHEET_ID")
        return GVIZ_CSV_URL.format(
            sheet_id=self.sheet_id,
            sheet_name=quote(self.sheet_name, safe=""),
        )

    async def fetch_csv(self) -> str:
        """Download the sheet as CSV text."""
        url = self.source_url()
        async with httpx.AsyncClient(transport=self._transport, follow_redirects=True) as client:
            response = await client.get(url, timeout=10.0)
            if response.status_code >= 400:
                raise httpx.HTTPStatusError(
                    f"Fetch sheet CSV failed: {response.status_code}",
                    request=response.request,
                    response=response,
                )
            return response.text

    async def fetch_store_row(self, storeid: str) -> dict | None:
        """Fetch the sheet and return the row for a store, or None."""
        objects = rows_to_objects(parse_csv(await self.fetch_csv()))
        return find_store_row(objects, storeid)
