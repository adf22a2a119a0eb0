"""
Normalization of store sheet rows into the payload served by /api/store.
"""
import re

from shared import places

# Sheet column suffix for each supported frontend language
LANG_SUFFIXES = ("En", "Cn", "Ko", "Fr", "Ja", "Es")
LIST_FIELD_BASES = ("top3", "features", "ambiance", "newItems", "cons")

# Spreadsheet column letters that hold the per-language cons lists
CONS_COLUMN_ALIASES = {"En": "AF", "Cn": "AG", "Ko": "AH", "Fr": "AI", "Ja": "AJ", "Es": "AK"}

_LIST_SEPARATORS = re.compile(r"[、，；;]")
_DRIVE_FILE_RE = re.compile(r"drive\.google\.com/file/d/([^/?#]+)")
_DRIVE_ID_PARAM_RE = re.compile(r"[?&]id=([^&#]+)")
DRIVE_VIEW_URL = "https://drive.google.com/uc?export=view&id={file_id}"


def normalize_list_cell(value) -> str:
    """Unify list separators, trim, drop empties and duplicates (order kept)."""
    if not value:
        return ""
    items = _LIST_SEPARATORS.sub(",", str(value)).split(",")
    unique = []
    seen = set()
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.add(item)
            unique.append(item)
    return ",".join(unique)


def normalize_drive_url(url) -> str:
    """Rewrite Google Drive share links into directly embeddable image URLs."""
    if not url:
        return ""
    s = str(url).strip()
    if re.search(r"drive\.google\.com/uc\?", s):
        return s
    match = _DRIVE_FILE_RE.search(s)
    if match:
        return DRIVE_VIEW_URL.format(file_id=match.group(1))
    match = _DRIVE_ID_PARAM_RE.search(s)
    if match:
        return DRIVE_VIEW_URL.format(file_id=match.group(1))
    return s


def absolutize_asset(url, headers) -> str:
    """Make site-relative asset paths absolute using the forwarded host."""
    if not url:
        return ""
    s = str(url).strip()
    if s.startswith("/"):
        host = headers.get("x-forwarded-host") or headers.get("host") or ""
        proto = headers.get("x-forwarded-proto") or "https"
        return f"{proto}://{host}{s}"
    return s


def pick_field(row: dict, aliases) -> str:
    """First non-empty value among header aliases (exact, then lower-case)."""
    for alias in aliases:
        if row.get(alias):
            return row[alias]
        lower = alias.lower()
        if row.get(lower):
            return row[lower]
    return ""


def normalize_row_to_store(row: dict, headers) -> dict:
    """Build the store payload from a sheet row."""
    store_id = str(pick_field(row, ["StoreID"])).strip()
    store_name = str(pick_field(row, ["StoreName", "Name"])).strip()
    place_id = str(pick_field(row, ["PlaceID", "GooglePlaceID"])).strip()

    logo_url = pick_field(row, ["LOGO", "Logo", "LogoUrl"])
    hero_url = pick_field(row, ["Hero圖片", "Hero", "HeroUrl", "HeroImage"])

    payload = {
        "storeid": store_id,
        "name": store_name or store_id,
        "placeId": place_id,
        "logoUrl": absolutize_asset(normalize_drive_url(logo_url), headers),
        "heroUrl": absolutize_asset(normalize_drive_url(hero_url), headers),
        "placePhotoUrl": "",
        # Brand colour (column AD) and primary button text colour (column AE)
        "themeBlue": str(pick_field(row, ["AD", "ThemeBlue", "BrandColor"])).strip(),
        "themeOnBlue": str(pick_field(row, ["AE", "ThemeOnBlue", "PrimaryTextColor"])).strip(),
        "top3": normalize_list_cell(pick_field(row, ["top3", "Top3Items"])),
        "features": normalize_list_cell(pick_field(row, ["features", "StoreFeatures"])),
        "ambiance": normalize_list_cell(pick_field(row, ["ambiance"])),
        "newItems": normalize_list_cell(pick_field(row, ["newItems", "新品", "NewItems"])),
    }

    for suffix in LANG_SUFFIXES:
        for base in LIST_FIELD_BASES:
            column = f"{base}{suffix}"
            aliases = [column]
            if base == "cons":
                aliases.append(CONS_COLUMN_ALIASES[suffix])
            payload[column] = normalize_list_cell(pick_field(row, aliases))

    photo_ref = pick_field(row, ["placePhotoRef", "photoReference", "PlacePhotoRef"])
    if photo_ref:
        payload["placePhotoUrl"] = places.build_photo_url(str(photo_ref).strip())

    return payload


async def resolve_place_photo(payload: dict) -> dict:
    """Fill placePhotoUrl from Place Details when the sheet did not provide one."""
    if not payload.get("placePhotoUrl") and payload.get("placeId") and places.is_configured():
        ref = await places.first_photo_reference(payload["placeId"])
        if ref:
            payload["placePhotoUrl"] = places.build_photo_url(ref)
    return payload
