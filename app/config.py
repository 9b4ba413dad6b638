"""
Runtime configuration loaded from the environment (and `.env` if present).

Usage:
    from app.config import settings

    settings.page_size
"""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw}, using {default}")
        return default


def _env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings:
    """Snapshot of the environment taken at construction time."""

    def __init__(self):
        self.data_dir = Path(os.getenv("DATA_DIR", "./data/quotes"))
        self.page_size = max(1, _env_int("PAGE_SIZE", 10))
        self.max_image_size = _env_int("MAX_IMAGE_SIZE", 1000)  # KiB
        self.less_repetition = min(100, max(0, _env_int("LESS_REPETITION", 80)))

        self.recency_cache_enabled = os.getenv("RECENCY_CACHE_ENABLED", "true").lower() == "true"
        self.recency_ttl_seconds = _env_float("RECENCY_TTL_SECONDS", 500.0)

        self.download_retries = max(0, _env_int("DOWNLOAD_RETRIES", 10))
        self.download_retry_delay = _env_float("DOWNLOAD_RETRY_DELAY", 2.0)
        self.min_file_size = _env_int("MIN_FILE_SIZE", 100)
        self.removal_delay_seconds = _env_float("REMOVAL_DELAY_SECONDS", 1.0)
        self.cancel_keywords = _env_list("CANCEL_KEYWORDS", "cancel,取消")

        self.telegram_bot_token = os.getenv("TELEGRAM_BOT_TOKEN")
        self.telegram_webhook_secret = os.getenv("TELEGRAM_WEBHOOK_SECRET")
        self.allowed_scopes = _env_list("ALLOWED_SCOPES")

    @property
    def max_image_bytes(self) -> int:
        return self.max_image_size * 1024


settings = Settings()
