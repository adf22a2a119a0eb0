"""
Local development entry point.

Serves the shared app with uvicorn on a SQLite database:

    python -m providers.local.handler
    uvicorn providers.local.handler:app --reload
"""
import os
from functools import lru_cache

import uvicorn

from shared.app import app, registry
from shared.config import Settings
from shared.openai_client import OpenAIClient
from shared.sheets import SheetClient
from providers.sqlite import database as sqlite_database
import shared.places as places_module
import shared.webhooks as webhooks_module


@lru_cache()
def get_settings() -> Settings:
    return Settings()


_initialized = False


async def _ensure_initialized():
    global _initialized
    if _initialized:
        return

    settings = get_settings()
    sqlite_database.configure(settings.database_path)
    await sqlite_database.init_db()
    places_module.configure(settings.google_maps_api_key)

    registry.configure(
        settings_fn=get_settings,
        database=sqlite_database,
        llm_client=OpenAIClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            temperature=settings.openai_temperature,
            top_p=settings.openai_top_p,
        ),
        sheet_client=SheetClient(
            csv_url=settings.sheet_csv_url,
            sheet_id=settings.sheet_id,
            sheet_name=settings.sheet_name,
        ),
        webhooks_module=webhooks_module,
    )
    _initialized = True
    print(f"DEBUG: Local providers initialized (sqlite: {settings.database_path})", flush=True)


@app.middleware("http")
async def ensure_initialized_middleware(request, call_next):
    await _ensure_initialized()
    return await call_next(request)


def main():
    uvicorn.run(
        app,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8888")),
    )


if __name__ == "__main__":
    main()
