# opelo/config.py

import logging
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True))

DEFAULT_RATING = 1000

ROSTER_URL = "https://onepiece.fandom.com/wiki/List_of_Canon_Characters"
CHARACTER_URL_BASE = "https://onepiece.fandom.com/wiki/"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings:
    """Env driven configuration."""

    def __init__(self) -> None:
        self.database_url: str = os.getenv("DATABASE_URL", "sqlite:///./opelo.db")
        self.db_echo: bool = os.getenv("DB_ECHO", "false").lower() == "true"

        self.roster_url: str = os.getenv("ROSTER_URL", ROSTER_URL)
        self.character_url_base: str = os.getenv("CHARACTER_URL_BASE", CHARACTER_URL_BASE)
        self.user_agent: str = os.getenv("SCRAPE_USER_AGENT", USER_AGENT)
        self.scrape_timeout: float = float(os.getenv("SCRAPE_TIMEOUT", "30"))
        self.image_delay_ms: int = int(os.getenv("IMAGE_DELAY_MS", "1000"))

        self.cors_origins: List[str] = _split(
            os.getenv("CORS_ORIGINS", "https://op-elo.onrender.com,http://localhost:5173")
        )
        self.image_proxy_referer: str = os.getenv(
            "IMAGE_PROXY_REFERER", "https://onepiece.fandom.com/"
        )
        self.image_proxy_timeout: float = float(os.getenv("IMAGE_PROXY_TIMEOUT", "10"))

        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
