"""
AWS Lambda / Netlify Functions configuration loading.

Netlify injects site environment variables straight into the function
environment, so settings come from the environment (or a local .env).
"""
import os
from functools import lru_cache

from shared.config import Settings

# Lambda only allows writes under /tmp
LAMBDA_SQLITE_PATH = "/tmp/reviews.db"


@lru_cache()
def get_settings() -> Settings:
    """Load settings from the function environment."""
    settings = Settings()
    if os.environ.get('AWS_LAMBDA_FUNCTION_NAME'):
        if not settings.database_url:
            print("DEBUG: WARNING - SUPABASE_PG_URL not set, falling back to ephemeral SQLite", flush=True)
            settings.database_path = LAMBDA_SQLITE_PATH
        if not settings.openai_api_key:
            print("DEBUG: WARNING - OPENAI_API_KEY not set", flush=True)
    return settings
