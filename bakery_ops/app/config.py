#!/usr/bin/env python3
"""
Configuration management for the bakery ordering backend.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_DB_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "ronis_bakery.db")

PLACEHOLDER_KEYS = ("your_openai_api_key_here", "test", "dev")


class Config:
    """Configuration class for the application."""

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{os.path.abspath(DEFAULT_DB_PATH)}")

    # OpenAI chat completions
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_API_BASE_URL = os.getenv("OPENAI_API_BASE_URL", "https://api.openai.com/v1/chat/completions")
    LLM_TIMEOUT = int(os.getenv("LLM_TIMEOUT", 60))
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", 1000))

    # Agent limits
    MAX_TOOL_ITERATIONS = int(os.getenv("MAX_TOOL_ITERATIONS", 3))
    MAX_MESSAGE_LENGTH = 4000
    MAX_CONVERSATION_TURNS = 14

    # Redis Configuration
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
    REDIS_DB = int(os.getenv("REDIS_DB", 0))
    SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", 24 * 60 * 60))
    MAX_MEMORY_SESSIONS = int(os.getenv("MAX_MEMORY_SESSIONS", 1000))

    # Auth
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-bakery-ops-development-secret")
    TOKEN_EXPIRE_HOURS = int(os.getenv("TOKEN_EXPIRE_HOURS", 12))

    # Application
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
    APP_VERSION = os.getenv("APP_VERSION", "0.1.0")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def has_llm(cls) -> bool:
        """True when a usable OpenAI key is configured."""
        key = cls.OPENAI_API_KEY
        return bool(key) and key not in PLACEHOLDER_KEYS

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == "development"

    @classmethod
    def validate(cls):
        """Validate that all required configuration is present."""
        missing = []

        if not cls.DATABASE_URL:
            missing.append("DATABASE_URL")
        if not cls.SECRET_KEY:
            missing.append("SECRET_KEY")
        # An LLM key is optional: agents drop to keyword fallback without one
        if cls.has_llm() and not cls.OPENAI_MODEL:
            missing.append("OPENAI_MODEL")

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True


# Validate configuration on import
Config.validate()
