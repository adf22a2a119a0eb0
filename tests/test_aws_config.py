from providers.aws import config as aws_config


def _load(monkeypatch, **env):
    for key in ("AWS_LAMBDA_FUNCTION_NAME", "DATABASE_URL", "SUPABASE_PG_URL", "OPENAI_API_KEY", "GOOGLE_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    aws_config.get_settings.cache_clear()
    try:
        return aws_config.get_settings()
    finally:
        aws_config.get_settings.cache_clear()


def test_supabase_aliases(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    settings = _load(
        monkeypatch,
        SUPABASE_PG_URL="postgresql://db.example.com/postgres",
        GOOGLE_API_KEY="maps-key",
        OPENAI_API_KEY="sk-test",
    )

    assert settings.database_url == "postgresql://db.example.com/postgres"
    assert settings.google_maps_api_key == "maps-key"
    assert settings.openai_api_key == "sk-test"


def test_lambda_without_postgres_uses_tmp_sqlite(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    settings = _load(monkeypatch, AWS_LAMBDA_FUNCTION_NAME="review-generator")

    assert settings.database_url == ""
    assert settings.database_path == aws_config.LAMBDA_SQLITE_PATH


def test_local_keeps_default_sqlite_path(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    settings = _load(monkeypatch)

    assert settings.database_path == "data/reviews.db"


def test_webhook_url_list(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    settings = _load(monkeypatch, WEBHOOK_URLS=" https://a.example.com/h ,, https://b.example.com/h ")

    assert settings.webhook_url_list == ["https://a.example.com/h", "https://b.example.com/h"]
