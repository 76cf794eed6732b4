import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from src.config import get_settings
from src.middleware import setup_middleware
from src.auth.router import router as auth_router
from src.auth.dependencies import close_http_client
from src.chat.registry import get_session_registry, sweep_idle
from src.chat.router import router as chat_router
from src.profiles.router import router as profiles_router
from src.profiles.store import get_session_store
from src.report.router import router as report_router

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    required = ["openai_api_key", "supabase_url", "supabase_service_key"]
    missing = [k for k in required if not getattr(settings, k)]
    if missing:
        logger.warning(f"Missing env vars: {missing}. Running with demo fallbacks.")

    sweeper = asyncio.create_task(sweep_idle(
        get_session_registry(),
        get_session_store(),
        settings.idle_eviction_seconds,
        settings.eviction_interval_seconds,
    ))

    yield

    sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper
    await get_session_store().flush()
    await close_http_client()


app = FastAPI(
    title="Raf Way API",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    lifespan=lifespan,
)

setup_middleware(app, settings.frontend_url)

app.include_router(auth_router, prefix="/api/auth")
app.include_router(profiles_router, prefix="/api")
app.include_router(chat_router, prefix="/api")
app.include_router(report_router, prefix="/api")


@app.get("/")
async def root():
    return {"status": "alive", "service": "rafway-api"}


@app.get("/health")
async def health():
    return {"status": "healthy", "service": "rafway-api"}


@app.get("/health/detailed")
async def health_detailed():
    checks = {"api": "healthy"}
    checks["openai"] = "configured" if settings.openai_api_key else "missing"
    checks["supabase"] = "configured" if settings.supabase_url and settings.supabase_service_key else "missing"
    overall = "healthy" if all(v != "missing" for v in checks.values()) else "degraded"
    return {"status": overall, "checks": checks}
