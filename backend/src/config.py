from pydantic_settings import BaseSettings
from functools import lru_cache
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    supabase_url: str = ""
    supabase_service_key: str = ""

    # Generation
    openai_model: str = "gpt-4.1-mini-2025-04-14"
    openai_timeout: float = 60.0
    chat_history_window: int = 0
    demo_latency_seconds: float = 1.5

    # Plans
    free_message_limit: int = 5

    # In-memory state
    idle_eviction_seconds: float = 3600.0
    eviction_interval_seconds: float = 300.0

    # App
    frontend_url: str = "http://localhost:3000"
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()


_supabase_client = None
_supabase_attempted = False


def get_supabase_client():
    """Get Supabase admin client. Returns None if not configured or keys are invalid."""
    global _supabase_client, _supabase_attempted

    if _supabase_attempted:
        return _supabase_client

    _supabase_attempted = True
    s = get_settings()

    if not s.supabase_url or not s.supabase_service_key:
        logger.warning("Supabase URL or service key not configured. Profiles are kept in memory.")
        return None

    try:
        from supabase import create_client
        _supabase_client = create_client(s.supabase_url, s.supabase_service_key)
        logger.info("Supabase client initialized successfully.")
        return _supabase_client
    except Exception as e:
        logger.error(
            f"Failed to initialize Supabase client: {e}. "
            "Profiles and chat logs will only live in memory. "
            "Check that SUPABASE_URL and SUPABASE_SERVICE_KEY are correct."
        )
        return None
