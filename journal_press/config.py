"""Configuration settings."""
import os
from dataclasses import dataclass
from typing import Final

from dotenv import load_dotenv

load_dotenv()

# Citation styles
STYLE_APA: Final[str] = "apa"
STYLE_HARVARD: Final[str] = "harvard"
STYLE_CHICAGO: Final[str] = "chicago"
STYLE_IEEE: Final[str] = "ieee"
DEFAULT_STYLE: Final[str] = STYLE_APA

# Audit note written on a submission when it is published
PUBLISHED_NOTE: Final[str] = "Published to journal"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


@dataclass
class Config:
    """Configuration settings for the journal press."""

    # Flask / persistence
    SECRET_KEY: str = "dev-secret-change-me"
    DATABASE_URL: str = "sqlite:///journal_press.db"
    STORAGE_DIR: str = "uploads"

    # Signed file URLs live this many seconds
    SIGNED_URL_TTL: int = 600

    # Workflow
    MIN_ABSTRACT_LENGTH: int = 20
    STRICT_STATUS_TRANSITIONS: bool = False
    ENFORCE_SINGLE_CURRENT_ISSUE: bool = True

    # Search
    SEARCH_RESULT_LIMIT: int = 10

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # Rate limiting
    RATELIMIT_DEFAULT: str = "200 per day;50 per hour"

    @classmethod
    def from_env(cls) -> "Config":
        """Build a Config from environment variables (and a local .env file)."""
        return cls(
            SECRET_KEY=os.getenv("JOURNAL_PRESS_SECRET_KEY", cls.SECRET_KEY),
            DATABASE_URL=os.getenv("DATABASE_URL", cls.DATABASE_URL),
            STORAGE_DIR=os.getenv("JOURNAL_PRESS_STORAGE_DIR", cls.STORAGE_DIR),
            SIGNED_URL_TTL=_env_int("SIGNED_URL_TTL", cls.SIGNED_URL_TTL),
            MIN_ABSTRACT_LENGTH=_env_int("MIN_ABSTRACT_LENGTH", cls.MIN_ABSTRACT_LENGTH),
            STRICT_STATUS_TRANSITIONS=_env_bool(
                "STRICT_STATUS_TRANSITIONS", cls.STRICT_STATUS_TRANSITIONS
            ),
            ENFORCE_SINGLE_CURRENT_ISSUE=_env_bool(
                "ENFORCE_SINGLE_CURRENT_ISSUE", cls.ENFORCE_SINGLE_CURRENT_ISSUE
            ),
            SEARCH_RESULT_LIMIT=_env_int("SEARCH_RESULT_LIMIT", cls.SEARCH_RESULT_LIMIT),
            LOG_DIR=os.getenv("LOG_DIR", cls.LOG_DIR),
            LOG_LEVEL=os.getenv("LOG_LEVEL", cls.LOG_LEVEL),
            RATELIMIT_DEFAULT=os.getenv("RATELIMIT_DEFAULT", cls.RATELIMIT_DEFAULT),
        )
