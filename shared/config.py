"""
Base configuration model for the review generator.
Provider-specific config loading is handled by each provider.
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_temperature: float = 0.8
    openai_top_p: float = 0.9

    # Store sheet (either a published CSV URL or a sheet id + tab name)
    sheet_id: str = ""
    sheet_name: str = "工作表1"
    sheet_csv_url: str = ""

    # Google Maps (Place Photo / Place Details)
    google_maps_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("google_maps_api_key", "google_api_key"),
    )

    # Database: Postgres URL (Supabase) or a local SQLite file
    database_url: str = Field(
        default="",
        validation_alias=AliasChoices("database_url", "supabase_pg_url"),
    )
    database_path: str = "data/reviews.db"

    # Generation limits
    daily_quota_per_ip: int = 30  # 0 disables the quota
    similarity_threshold: float = 0.6
    dedup_recent_limit: int = 30
    dedup_max_retries: int = 2
    cache_ttl_seconds: int = 45

    # Comma-separated list of URLs notified after each generation
    webhook_urls: str = ""

    class Config:
        env_file = ".env"
        populate_by_name = True
        extra = "ignore"

    @property
    def webhook_url_list(self) -> list[str]:
        return [u.strip() for u in self.webhook_urls.split(",") if u.strip()]
