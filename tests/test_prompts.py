from shared.prompts import (
    EXCERPT_CHARS,
    LANGUAGES,
    build_system_prompt,
    build_user_prompt,
    resolve_lang,
    steering_hint,
    variant_flavor,
)


def test_resolve_lang_aliases_and_fallback():
    assert resolve_lang("en") == "en"
    assert resolve_lang(" JA ") == "ja"
    assert resolve_lang("zh-TW") == "zh"
    assert resolve_lang("cn") == "zh"
    assert resolve_lang("de") == "zh"
    assert resolve_lang(None) == "zh"


def test_every_language_has_five_flavors():
    for pack in LANGUAGES.values():
        assert len(pack.flavors) == 5


def test_variant_wraps_and_tolerates_junk():
    flavors = LANGUAGES["zh"].flavors
    assert variant_flavor(0) == flavors[0]
    assert variant_flavor(6) == flavors[1]
    assert variant_flavor(-2) == flavors[2]
    assert variant_flavor("3") == flavors[3]
    assert variant_flavor("abc") == flavors[0]
    assert variant_flavor(None) == flavors[0]


def test_system_prompt_is_language_specific():
    assert "繁體中文" in build_system_prompt("zh")
    assert "English" in build_system_prompt("en")
    assert build_system_prompt("xx") == build_system_prompt("zh")


def test_user_prompt_chinese():
    prompt = build_user_prompt("zh", "小巷麵館", "demo", ["牛肉麵", "滷味"], ["排隊久"], 1, 80, 180)

    lines = prompt.split("\n")
    assert lines[0] == "店名: 小巷麵館"
    assert lines[1] == "店家代號: demo"
    assert lines[2] == "重點標籤: 牛肉麵、滷味"
    assert lines[3] == "可改進之處: 排隊久"
    assert lines[4] == "風格變體要求: " + LANGUAGES["zh"].flavors[1]
    assert "80–180" in lines[5]
    assert lines[-1] == LANGUAGES["zh"].output_only


def test_user_prompt_omits_cons_when_empty():
    prompt = build_user_prompt("en", "Corner Cafe", "cafe", [], [], 0, 40, 60)

    assert "Key tags: none" in prompt
    assert "Could improve" not in prompt
    assert "Length: 40-60 characters." in prompt


def test_user_prompt_includes_steering_hint():
    prompt = build_user_prompt("en", "Cafe", "cafe", ["Latte"], [], 0, 80, 180, avoid_text="The latte was silky.")

    assert 'this existing review: "The latte was silky."' in prompt
    assert prompt.endswith(LANGUAGES["en"].output_only)


def test_steering_hint_truncates_long_excerpts():
    text = "字" * (EXCERPT_CHARS + 20)

    hint = steering_hint("zh", text)

    assert "字" * EXCERPT_CHARS + "…" in hint
    assert "字" * (EXCERPT_CHARS + 1) not in hint


def test_steering_hint_collapses_whitespace():
    hint = steering_hint("en", "Rich   broth,\n friendly staff.")
    assert '"Rich broth, friendly staff."' in hint
