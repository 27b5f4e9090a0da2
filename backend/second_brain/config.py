"""
Environment-driven settings for the Second Brain API.

Values are read once at import time; a local ``.env`` file is honoured.
"""

import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

SUPPORTED_LANGUAGES = ("en", "zh")


class Config:
    """Application configuration"""

    # Flask / CORS
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")
    FRONTEND_URL: Optional[str] = os.getenv("FRONTEND_URL")

    # Model provider
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_EMBEDDING_MODEL: str = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")

    # Note store; unset means a local SQLite file outside production
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    # Language used when a request does not name one
    DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "en").lower()

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def is_development(cls) -> bool:
        return cls.FLASK_ENV == "development"

    @classmethod
    def validate(cls):
        """Raise ValueError listing every missing or malformed setting."""
        problems = []

        if not cls.OPENAI_API_KEY:
            problems.append("OPENAI_API_KEY is not set")
        if cls.DEFAULT_LANGUAGE not in SUPPORTED_LANGUAGES:
            problems.append(
                f"DEFAULT_LANGUAGE must be one of {', '.join(SUPPORTED_LANGUAGES)}, got {cls.DEFAULT_LANGUAGE!r}"
            )

        if problems:
            raise ValueError(f"Configuration errors: {'; '.join(problems)}")
