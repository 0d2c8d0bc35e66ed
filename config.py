"""Configuration and constants for the application."""
import os
from dotenv import load_dotenv
import logging

# Load environment variables
load_dotenv(override=True)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Configuration class for the knowledge service."""

    # MongoDB Configuration
    MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/")
    MONGODB_DB = os.getenv("MONGODB_DB", "second_brain")

    # LLM Configuration (any OpenAI-compatible endpoint)
    LLM_URI = os.getenv("LLM_URI", "https://api.openai.com/v1")
    LLM_API_KEY = os.getenv("LLM_API_KEY")
    LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
    LLM_EMBEDDING_MODEL = os.getenv("LLM_EMBEDDING_MODEL", "text-embedding-3-small")

    # Embedding Configuration
    # Off by default; retrieval then relies on text search only
    EMBEDDINGS_ENABLED = _env_bool("EMBEDDINGS_ENABLED", False)
    # 0 = accept the model's native size
    EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "0")) or None

    # Retrieval Configuration
    SEARCH_MAX_LIMIT = int(os.getenv("SEARCH_MAX_LIMIT", "100"))
    SEMANTIC_MATCH_THRESHOLD = float(os.getenv("SEMANTIC_MATCH_THRESHOLD", "0.5"))
    NEUTRAL_RELEVANCE = 0.5

    # Timeouts for every external call (seconds)
    PROVIDER_TIMEOUT_SECONDS = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "30"))
    STORAGE_TIMEOUT_SECONDS = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "10"))

    # CORS for the application frontend
    FRONTEND_ORIGINS = os.getenv("FRONTEND_ORIGINS", "http://localhost:3000").split(",")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> list[str]:
        """Validate required configuration values."""
        errors = []
        if not cls.MONGODB_URI:
            errors.append("MONGODB_URI is required")
        if not cls.MONGODB_DB:
            errors.append("MONGODB_DB is required")
        if not cls.LLM_URI:
            errors.append("LLM_URI is required")
        if not cls.LLM_MODEL:
            errors.append("LLM_MODEL is required")
        if cls.EMBEDDINGS_ENABLED and not cls.LLM_EMBEDDING_MODEL:
            errors.append("LLM_EMBEDDING_MODEL is required when embeddings are enabled")
        if cls.SEARCH_MAX_LIMIT < 1:
            errors.append("SEARCH_MAX_LIMIT must be at least 1")
        if not 0.0 <= cls.SEMANTIC_MATCH_THRESHOLD <= 1.0:
            errors.append("SEMANTIC_MATCH_THRESHOLD must be between 0 and 1")
        return errors


def get_config() -> Config:
    """Get the configuration instance."""
    return Config()


# Set up logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("second_brain")
logging.getLogger("pymongo").setLevel(logging.ERROR)
logging.getLogger("httpx").setLevel(logging.WARNING)
