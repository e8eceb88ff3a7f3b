"""
Configuration module - loads all settings from environment variables.
"""
import os
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
try:
    load_dotenv()
except Exception as e:
    print(f"Warning: Failed to load .env file: {e}")
    print("Continuing with environment variables or defaults...")


class Config:
    """Application configuration loaded from environment variables."""

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Safely parse integer environment variable."""
        try:
            return int(os.getenv(key, str(default)))
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid integer for {key}, using default {default}: {e}")
            return default

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Safely parse float environment variable."""
        try:
            return float(os.getenv(key, str(default)))
        except (ValueError, TypeError) as e:
            print(f"Warning: Invalid float for {key}, using default {default}: {e}")
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Safely parse boolean environment variable."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.strip().lower() in ("true", "1", "yes", "on")

    @staticmethod
    def _get_list(key: str, default: str) -> List[str]:
        """Parse a comma-separated environment variable."""
        raw = os.getenv(key, default)
        return [item.strip() for item in raw.split(",") if item.strip()]

    # Gemini API
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_IMAGE_MODEL: str = os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
    GENERATION_TIMEOUT_SECONDS: float = _get_float.__func__("GENERATION_TIMEOUT_SECONDS", 120.0)

    # Uploads
    MAX_UPLOAD_MB: int = _get_int.__func__("MAX_UPLOAD_MB", 10)

    # Sessions (in-memory only)
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "banana_session")
    SESSION_TTL_MINUTES: int = _get_int.__func__("SESSION_TTL_MINUTES", 60)
    SESSION_COOKIE_SECURE: bool = _get_bool.__func__("SESSION_COOKIE_SECURE", False)

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _get_int.__func__("PORT", 8000)
    CORS_ORIGINS: List[str] = _get_list.__func__("CORS_ORIGINS", "*")

    @classmethod
    def max_upload_bytes(cls) -> int:
        return cls.MAX_UPLOAD_MB * 1024 * 1024

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        if not cls.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY environment variable is required")
        if cls.GENERATION_TIMEOUT_SECONDS <= 0:
            raise ValueError("GENERATION_TIMEOUT_SECONDS must be positive")

    @classmethod
    def get_gemini_api_key(cls) -> str:
        """Get GEMINI_API_KEY, raise error if not set."""
        if not cls.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY must be set in environment variables")
        return cls.GEMINI_API_KEY
