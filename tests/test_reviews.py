import shared.reviews as reviews
from shared.reviews import TTLCache, clamp_days, clamp_lengths, clean_tags, stable_key, tag_bucket_columns


def test_clamp_lengths_defaults():
    assert clamp_lengths(None, None) == (80, 180)


def test_clamp_lengths_floor_and_spread():
    assert clamp_lengths(10, 20) == (40, 50)
    assert clamp_lengths(100, 90) == (100, 110)
    assert clamp_lengths(60, 200) == (60, 200)


def test_clamp_days():
    assert clamp_days("7") == 7
    assert clamp_days(365) == 365
    assert clamp_days(None) == 30
    assert clamp_days("abc") == 30
    assert clamp_days(0) == 30
    assert clamp_days(-5) == 30
    assert clamp_days(366) == 30


def test_tag_bucket_columns_full():
    columns = tag_bucket_columns({
        "posTop3": ["牛肉麵", "滷味"],
        "posFeatures": ["親切"],
        "posAmbiance": [],
        "posNewItems": "季節限定",
        "cons": ["排隊久"],
        "customFood": "酸辣湯",
        "customCons": "",
    })

    assert columns == {
        "pos_top3_tags": "牛肉麵,滷味",
        "pos_features_tags": "親切",
        "pos_ambiance_tags": "",
        "pos_newitems_tags": "季節限定",
        "cons_tags": "排隊久",
        "custom_food_tag": "酸辣湯",
        "custom_cons_tag": None,
    }


def test_tag_bucket_columns_missing():
    columns = tag_bucket_columns(None)
    assert columns == {
        "pos_top3_tags": "",
        "pos_features_tags": "",
        "pos_ambiance_tags": "",
        "pos_newitems_tags": "",
        "cons_tags": "",
        "custom_food_tag": None,
        "custom_cons_tag": None,
    }


def test_tag_bucket_columns_explicit_null_keeps_column():
    columns = tag_bucket_columns({"posTop3": None, "cons": ["排隊久"]})

    assert columns["pos_top3_tags"] is None
    assert columns["cons_tags"] == "排隊久"
    # Keys absent from the payload still clear their column
    assert columns["pos_features_tags"] == ""


def test_clean_tags():
    assert clean_tags([" 牛肉麵 ", "", "滷味", "牛肉麵 ", "  "]) == ["牛肉麵", "滷味"]
    assert clean_tags(None) == []


def test_stable_key_ignores_order():
    assert stable_key({"a": 1, "b": [2]}) == stable_key({"b": [2], "a": 1})


def test_cache_expiry(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(reviews.time, "time", lambda: now[0])
    cache = TTLCache()

    cache.set("k", {"v": 1}, ttl_seconds=45)
    assert cache.get("k") == {"v": 1}

    now[0] += 46
    assert cache.get("k") is None


def test_cache_zero_ttl_stores_nothing():
    cache = TTLCache()
    cache.set("k", "v", ttl_seconds=0)
    assert cache.get("k") is None


def test_cache_evicts_oldest_when_full(monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(reviews.time, "time", lambda: now[0])
    cache = TTLCache(max_entries=2)

    cache.set("a", 1, ttl_seconds=10)
    now[0] += 1
    cache.set("b", 2, ttl_seconds=10)
    now[0] += 1
    cache.set("c", 3, ttl_seconds=10)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3
