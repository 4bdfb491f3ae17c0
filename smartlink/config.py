# smartlink/config.py
"""
Configuration settings for SmartLink.
Everything is read from environment variables once at import time.
"""
import os
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class OpenAIConfig:
    """OpenAI API configuration."""
    api_key: str
    model: str = "gpt-4o-mini"
    temperature: float = 0.3
    max_tokens: int = 1000
    timeout: float = 30.0
    max_retries: int = 0


@dataclass
class RedisConfig:
    """Redis connection used by the server-side extraction cache."""
    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    db: int = 0

    @property
    def url(self) -> str:
        """redis:// URL for redis.asyncio.from_url."""
        auth = f":{quote(self.password, safe='')}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass
class ExtractionConfig:
    """Extraction pipeline settings."""
    cache_backend: str = "memory"  # "redis", "memory" or "none"
    cache_ttl: int = 3600  # 1 hour, wins over the storage default
    rate_limit: int = 10
    rate_limit_window: int = 15 * 60
    fetch_page: bool = False


@dataclass
class Config:
    """Main application configuration."""
    openai: OpenAIConfig
    redis: RedisConfig = field(default_factory=RedisConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)

    debug: bool = False
    port: int = 3001
    cors_origin: str = "http://localhost:3000"


def load_config() -> Config:
    """Load configuration from environment variables."""
    openai_config = OpenAIConfig(
        api_key=os.getenv("OPENAI_API_KEY", ""),
        model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        temperature=float(os.getenv("OPENAI_TEMPERATURE", "0.3")),
        max_tokens=int(os.getenv("OPENAI_MAX_TOKENS", "1000")),
        timeout=float(os.getenv("OPENAI_TIMEOUT", "30")),
        max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "0")),
    )

    redis_config = RedisConfig(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", "6379")),
        password=os.getenv("REDIS_PASSWORD") or None,
        db=int(os.getenv("REDIS_DB", "0")),
    )

    extraction_config = ExtractionConfig(
        cache_backend=os.getenv("CACHE_BACKEND", "memory").lower(),
        cache_ttl=int(os.getenv("EXTRACTION_CACHE_TTL", "3600")),
        rate_limit=int(os.getenv("EXTRACTION_RATE_LIMIT", "10")),
        rate_limit_window=int(os.getenv("EXTRACTION_RATE_WINDOW", str(15 * 60))),
        fetch_page=_env_bool("EXTRACTION_FETCH_PAGE"),
    )

    return Config(
        openai=openai_config,
        redis=redis_config,
        extraction=extraction_config,
        debug=_env_bool("DEBUG"),
        port=int(os.getenv("PORT", "3001")),
        cors_origin=os.getenv("CORS_ORIGIN", "http://localhost:3000"),
    )


config = load_config()

# Input limits
MAX_URL_LENGTH: int = 2048
URL_FETCH_TIMEOUT: int = 10
PAGE_TEXT_LIMIT: int = 3000
REDIS_DEFAULT_TTL: int = 60 * 60 * 24 * 7  # 7 дней
MEMORY_CACHE_MAX_ITEMS: int = 1000
