from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path

# Get absolute path to backend directory (config/settings.py -> backend/)
_backend_dir = Path(__file__).parent.parent
_env_local = _backend_dir / '.env.local'
_env_file = _backend_dir / '.env'


class Settings(BaseSettings):
    """Scraper settings"""

    # Database Configuration
    DATABASE_URL: str  # PostgreSQL connection string (production)

    # CORS - Will be parsed from environment variable string
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Model endpoint (chat completions, JSON mode)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = ""  # Empty = SDK default
    AI_MODEL: str = "gpt-4o-mini"
    AI_MAX_TOKENS: int = 4000
    AI_BATCH_SIZE: int = 10

    # Work queue
    QUEUE_CONCURRENCY: int = 10
    QUEUE_RATE_LIMIT: int = 10  # dispatches per QUEUE_RATE_PERIOD
    QUEUE_RATE_PERIOD: float = 1.0
    QUEUE_MAX_ATTEMPTS: int = 3
    QUEUE_BACKOFF_BASE: float = 1.0  # seconds, doubled per attempt
    QUEUE_VISIBILITY_TIMEOUT: int = 600  # active units older than this are requeued
    QUEUE_POLL_INTERVAL: float = 0.5
    QUEUE_RETENTION_DAYS: int = 7  # completed units older than this are deleted

    # Fetching
    FETCH_TIMEOUT: float = 15.0

    # Scheduling
    TRIGGER_COOLDOWN_SECONDS: int = 3600  # 1 hour between on-demand runs
    SCHEDULE_INTERVAL_SECONDS: int = 3600
    MAX_COMPANIES: int = 100

    # Ingestion
    JOB_EXPIRY_DAYS: int = 60

    class Config:
        # Prioritize .env.local for local development, fallback to .env
        # Use absolute paths to avoid working directory issues
        env_file = str(_env_local) if _env_local.exists() else str(_env_file)
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from environment file

    def get_allowed_origins(self) -> List[str]:
        """Parse and return CORS origins as a list"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]
