import os
import logging
import secrets
from functools import lru_cache
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime configuration read from the environment"""

    def __init__(self):
        # Database settings
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
        self.DATABASE_NAME: str = os.getenv("DATABASE_NAME", "grainly")

        # Server settings
        self.PORT: int = int(os.getenv("PORT", 8000))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Admin tokens
        secret = os.getenv("ADMIN_TOKEN_SECRET")
        if not secret:
            logger.warning("ADMIN_TOKEN_SECRET not set, admin tokens will not survive a restart")
            secret = secrets.token_urlsafe(32)
        self.ADMIN_TOKEN_SECRET: str = secret
        self.ADMIN_TOKEN_TTL: int = int(os.getenv("ADMIN_TOKEN_TTL", 86400))

        # Orders and pricing
        self.ORDER_NUMBER_PREFIX: str = os.getenv("ORDER_NUMBER_PREFIX", "GRN")
        self.CURRENCY: str = os.getenv("CURRENCY", "INR")
        self.FREE_SHIPPING_THRESHOLD: float = float(os.getenv("FREE_SHIPPING_THRESHOLD", 1000))
        self.FLAT_SHIPPING_COST: float = float(os.getenv("FLAT_SHIPPING_COST", 50))
        self.TAX_RATE: float = float(os.getenv("TAX_RATE", 0.05))

        # Startup seeding
        self.SEED_DEMO_DATA: bool = _env_bool("SEED_DEMO_DATA", True)
        self.SEED_ADMIN_USERNAME: Optional[str] = os.getenv("SEED_ADMIN_USERNAME")
        self.SEED_ADMIN_PASSWORD: Optional[str] = os.getenv("SEED_ADMIN_PASSWORD")
        self.SEED_ADMIN_EMAIL: str = os.getenv("SEED_ADMIN_EMAIL", "admin@grainly.com")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def setup_logging(level: str = "INFO"):
    """Configure logging settings"""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
