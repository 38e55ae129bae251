"""Configuration management for SmartChef.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os
from typing import Optional

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        # Text model: recipe writing, nutrition analysis, Q&A and challenges
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
        # Image synthesis model: must support the IMAGE response modality
        self.IMAGE_GENERATION_MODEL: str = os.getenv(
            "IMAGE_GENERATION_MODEL", "gemini-2.0-flash-preview-image-generation"
        )
        # Vision model for ingredient detection from photos
        # Default: gemini-2.5-flash-lite (fast, cost-effective for images)
        self.IMAGE_DETECTION_MODEL: str = os.getenv("IMAGE_DETECTION_MODEL", "gemini-2.5-flash-lite")

        # LLM Model Parameters
        # Temperature: 0.0 = deterministic, 1.0 = max randomness
        self.TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.4"))
        # Cooking challenges are meant to be surprising, so they run hotter
        self.CHALLENGE_TEMPERATURE: float = float(os.getenv("CHALLENGE_TEMPERATURE", "0.9"))
        # 2048 is sufficient for a full recipe with instructions
        self.MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "2048"))

        # Upper bound for a single hosted-model call (seconds). Hosted calls have no inherent bound.
        self.GENERATION_TIMEOUT_SECONDS: float = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "60"))
        # Image synthesis is slower than text, so it gets its own ceiling
        self.IMAGE_TIMEOUT_SECONDS: float = float(os.getenv("IMAGE_TIMEOUT_SECONDS", "120"))

        # Maximum photo size (in MB) accepted for ingredient detection. Default: 5 MB
        self.MAX_IMAGE_SIZE_MB: int = int(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
        # Minimum confidence score (0.0 - 1.0) for a detected ingredient to be kept. Default: 0.5
        self.MIN_INGREDIENT_CONFIDENCE: float = float(os.getenv("MIN_INGREDIENT_CONFIDENCE", "0.5"))
        # Image Compression: Enable/disable photo compression before upload
        self.COMPRESS_IMG: bool = _env_bool("COMPRESS_IMG", "true")
        # Only compress photos larger than this (in KB)
        self.COMPRESS_IMG_THRESHOLD_KB: int = int(os.getenv("COMPRESS_IMG_THRESHOLD_KB", "300"))

        # Enrichment stages run after the base recipe is persisted
        self.ENABLE_NUTRITION_ANALYSIS: bool = _env_bool("ENABLE_NUTRITION_ANALYSIS", "true")
        self.ENABLE_IMAGE_GENERATION: bool = _env_bool("ENABLE_IMAGE_GENERATION", "true")
        # false: nutrition first, then image. true: both at once.
        self.ENRICH_CONCURRENTLY: bool = _env_bool("ENRICH_CONCURRENTLY", "false")

        # Supabase (hosted persistence + auth). When SUPABASE_URL is unset the local
        # SQLite backend is used instead.
        self.SUPABASE_URL: Optional[str] = os.getenv("SUPABASE_URL")
        self.SUPABASE_KEY: Optional[str] = os.getenv("SUPABASE_KEY")
        # Optional credentials used to open a session for CLI use
        self.SUPABASE_EMAIL: Optional[str] = os.getenv("SUPABASE_EMAIL")
        self.SUPABASE_PASSWORD: Optional[str] = os.getenv("SUPABASE_PASSWORD")
        self.RECIPES_TABLE: str = os.getenv("RECIPES_TABLE", "recipes")
        self.PREFERENCES_TABLE: str = os.getenv("PREFERENCES_TABLE", "user_preferences")

        # Local SQLite database file (development backend)
        self.DATABASE_FILE: str = os.getenv("DATABASE_FILE", "tmp/smartchef.db")
        # Identity used with the local backend
        self.LOCAL_USER_ID: str = os.getenv("LOCAL_USER_ID", "local-user")

        # Tracing Configuration
        # ENABLE_TRACING: OpenTelemetry tracing of model calls (needs the tracing extra)
        self.ENABLE_TRACING: bool = _env_bool("ENABLE_TRACING", "false")
        # TRACING_DB_FILE: SQLite database file name for traces
        self.TRACING_DB_FILE: str = os.getenv("TRACING_DB_FILE", "tmp/smartchef_traces.db")

    @property
    def use_supabase(self) -> bool:
        """True when a hosted Supabase project is configured."""
        return bool(self.SUPABASE_URL)

    def validate(self) -> None:
        """Validate required configuration.

        Raises:
            ValueError: If required API keys are missing or invalid values provided.
        """
        if not self.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY environment variable is required")
        if self.SUPABASE_URL and not self.SUPABASE_KEY:
            raise ValueError("SUPABASE_KEY environment variable is required when SUPABASE_URL is set")
        if not (0.0 <= self.TEMPERATURE <= 1.0):
            raise ValueError(f"TEMPERATURE must be between 0.0 and 1.0, got: {self.TEMPERATURE}")
        if not (0.0 <= self.CHALLENGE_TEMPERATURE <= 2.0):
            raise ValueError(
                f"CHALLENGE_TEMPERATURE must be between 0.0 and 2.0, got: {self.CHALLENGE_TEMPERATURE}"
            )
        if self.MAX_OUTPUT_TOKENS < 512:
            raise ValueError(f"MAX_OUTPUT_TOKENS must be at least 512, got: {self.MAX_OUTPUT_TOKENS}")
        if self.GENERATION_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"GENERATION_TIMEOUT_SECONDS must be positive, got: {self.GENERATION_TIMEOUT_SECONDS}"
            )
        if self.IMAGE_TIMEOUT_SECONDS <= 0:
            raise ValueError(f"IMAGE_TIMEOUT_SECONDS must be positive, got: {self.IMAGE_TIMEOUT_SECONDS}")
        if not (0.0 <= self.MIN_INGREDIENT_CONFIDENCE <= 1.0):
            raise ValueError(
                f"MIN_INGREDIENT_CONFIDENCE must be between 0.0 and 1.0, got: {self.MIN_INGREDIENT_CONFIDENCE}"
            )
        if self.MAX_IMAGE_SIZE_MB < 1:
            raise ValueError(f"MAX_IMAGE_SIZE_MB must be at least 1, got: {self.MAX_IMAGE_SIZE_MB}")


# Create module-level config instance and validate immediately
config = Config()
config.validate()
