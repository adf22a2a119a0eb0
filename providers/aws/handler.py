"""
AWS Lambda handler for the review generator.

This is the entry point for AWS Lambda and Netlify Functions (which run on
Lambda and share its event format). It configures the shared app with the
Postgres (Supabase) database and wraps the FastAPI app with Mangum.
"""
from mangum import Mangum

print("DEBUG: Starting providers.aws.handler module load...", flush=True)

# =============================================================================
# Lazy imports for cold start optimization
# =============================================================================

_initialized = False


async def _ensure_initialized():
    """Lazy-initialize all providers on first request."""
    global _initialized
    if _initialized:
        return

    print("DEBUG: Initializing AWS providers...", flush=True)

    from shared.app import registry
    from providers.aws.config import get_settings
    from shared.openai_client import OpenAIClient
    from shared.sheets import SheetClient
    import shared.places as places_module
    import shared.webhooks as webhooks_module

    # Load settings
    settings = get_settings()

    # Pick the database backend
    if settings.database_url:
        from providers.postgres import database
        database.configure(settings.database_url)
    else:
        from providers.sqlite import database
        database.configure(settings.database_path)
    await database.init_db()

    # Configure Places with the Maps key
    places_module.configure(settings.google_maps_api_key)

    llm_client = OpenAIClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        temperature=settings.openai_temperature,
        top_p=settings.openai_top_p,
    )
    sheet_client = SheetClient(
        csv_url=settings.sheet_csv_url,
        sheet_id=settings.sheet_id,
        sheet_name=settings.sheet_name,
    )

    # Register all providers
    registry.configure(
        settings_fn=get_settings,
        database=database,
        llm_client=llm_client,
        sheet_client=sheet_client,
        webhooks_module=webhooks_module,
    )

    _initialized = True
    print("DEBUG: AWS providers initialized", flush=True)


# Import the shared app
from shared.app import app


# Add initialization middleware that runs on first request
@app.middleware("http")
async def ensure_initialized_middleware(request, call_next):
    await _ensure_initialized()
    return await call_next(request)


print("DEBUG: Module load complete, handler ready", flush=True)

# Lambda handler - lifespan="off" since we handle init lazily
handler = Mangum(app, lifespan="off")
