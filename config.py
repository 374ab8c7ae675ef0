"""
Application configuration: environment-aware settings.

All environment variables are documented here. See .env.example for a template.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent

load_dotenv()


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    DATABASE = os.environ.get("DATABASE_URL", str(BASE_DIR / "homework_helper.db"))

    # Session security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 86400

    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB, JSON bodies only

    # AI provider
    LLM_PROVIDER = os.environ.get("LLM_PROVIDER", "openai")  # "openai" or "claude"
    LLM_MODEL = os.environ.get("LLM_MODEL", "")  # empty = provider default
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    OPENAI_BASE_URL = os.environ.get("OPENAI_BASE_URL", "")
    ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Used to build student share links
    BASE_URL = os.environ.get("BASE_URL", "http://localhost:5001")

    # Exam sessions idle longer than this are closed and dropped
    EXAM_SESSION_TTL = int(os.environ.get("EXAM_SESSION_TTL", "14400"))

    # Response compression
    COMPRESS_MIMETYPES = ["application/json", "text/html"]
    COMPRESS_MIN_SIZE = 500

    # Rate limiting (defaults to in-memory)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    SESSION_COOKIE_SECURE = True

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.LLM_PROVIDER not in ("openai", "claude"):
            errors.append(f"LLM_PROVIDER must be 'openai' or 'claude', got {cls.LLM_PROVIDER!r}.")

        if cls.LLM_PROVIDER == "openai" and not cls.OPENAI_API_KEY:
            warnings.warn("OPENAI_API_KEY is not set; homework generation will fail.")
        if cls.LLM_PROVIDER == "claude" and not cls.ANTHROPIC_API_KEY:
            warnings.warn("ANTHROPIC_API_KEY is not set; homework generation will fail.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    RATELIMIT_ENABLED = False


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
