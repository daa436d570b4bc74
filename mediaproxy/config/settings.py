import json
import os
import logging
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, validator

logger = logging.getLogger(__name__)

UA_CHROME = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

class RedisConfig(BaseModel):
    url: str = Field(default="redis://localhost:6379", description="Redis connection URL")
    enabled: bool = Field(default=True, description="Try to connect to Redis on startup")
    socket_timeout: int = Field(default=5, description="Redis socket timeout in seconds")

class RateLimitConfig(BaseModel):
    enabled: bool = Field(default=True, description="Enable rate limiting")
    max_requests: int = Field(default=30, ge=1, description="Max requests per window")
    window_seconds: int = Field(default=60, ge=1, description="Rate limit window in seconds")

class ProxyConfig(BaseModel):
    user_agent: str = Field(default=UA_CHROME, description="Default upstream User-Agent")
    referer: str = Field(default="https://www.facebook.com/", description="Default upstream Referer")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Upstream request timeout in seconds")
    max_redirects: int = Field(default=5, ge=0, description="Max upstream redirects")
    chunk_size: int = Field(default=64 * 1024, ge=1024, description="Streaming chunk size in bytes")

class StorageConfig(BaseModel):
    downloads_dir: str = Field(default="downloads", description="Scratch download directory")

class ExtractorConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Extraction timeout in seconds")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout for yt-dlp")
    retries: int = Field(default=3, ge=0, description="Number of retries for yt-dlp")
    cache_ttl: int = Field(default=300, ge=0, description="Extraction cache TTL in seconds")

class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @validator('level')
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: list = Field(default=["en", "ja"], description="Supported locales")

class ApiConfig(BaseModel):
    title: str = Field(default="Meta Media Proxy", description="API title")
    version: str = Field(default="1.0.0", description="API version")
    prefix: str = Field(default="/api/meta", description="Route prefix for media endpoints")
    cors_origins: list = Field(default=["*"], description="CORS allowed origins")
    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")
    max_port_retries: int = Field(default=5, ge=0, description="Extra ports to try when busy")
    debug: bool = Field(default=False, description="Enable debug mode")

class Config(BaseModel):
    """Main configuration model"""
    redis: RedisConfig = Field(default_factory=RedisConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    extractor: ExtractorConfig = Field(default_factory=ExtractorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def load_from_file(cls, config_path: str = "config.json") -> "Config":
        """Load configuration from JSON file"""
        if os.path.exists(config_path):
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
                logger.info(f"Configuration loaded from {config_path}")
                return cls(**config_data)
            except Exception as e:
                logger.error(f"Failed to load config from {config_path}: {str(e)}")
                logger.info("Using default configuration")
        else:
            logger.warning(f"Config file {config_path} not found, using defaults")

        return cls()

    @classmethod
    def load_from_env(cls) -> "Config":
        """Load configuration from environment variables (fallback)"""
        config_data: Dict[str, Any] = {}

        # Redis
        if os.getenv("REDIS_URL"):
            config_data["redis"] = {"url": os.getenv("REDIS_URL")}

        # Rate limiting
        rate_limit = {}
        if os.getenv("RATE_LIMIT_REQUESTS"):
            rate_limit["max_requests"] = int(os.getenv("RATE_LIMIT_REQUESTS"))
        if os.getenv("RATE_LIMIT_WINDOW"):
            rate_limit["window_seconds"] = int(os.getenv("RATE_LIMIT_WINDOW"))
        if rate_limit:
            config_data["rate_limit"] = rate_limit

        # Upstream proxy
        if os.getenv("UPSTREAM_TIMEOUT"):
            config_data["proxy"] = {"timeout_seconds": float(os.getenv("UPSTREAM_TIMEOUT"))}

        # Scratch storage
        if os.getenv("DOWNLOADS_DIR"):
            config_data["storage"] = {"downloads_dir": os.getenv("DOWNLOADS_DIR")}

        # Logging
        if os.getenv("LOG_LEVEL"):
            config_data["logging"] = {"level": os.getenv("LOG_LEVEL")}

        # i18n
        if os.getenv("DEFAULT_LOCALE"):
            config_data["i18n"] = {"default_locale": os.getenv("DEFAULT_LOCALE")}

        # API / bootstrap
        api = {}
        if os.getenv("PORT"):
            api["port"] = int(os.getenv("PORT"))
        if os.getenv("HOST"):
            api["host"] = os.getenv("HOST")
        if os.getenv("API_PREFIX") is not None:
            api["prefix"] = os.getenv("API_PREFIX")
        if api:
            config_data["api"] = api

        return cls(**config_data) if config_data else cls()

def load_config() -> Config:
    """Load configuration with priority: config.json > env vars > defaults"""
    config_path = os.getenv("CONFIG_PATH", "config.json")

    if os.path.exists(config_path):
        return Config.load_from_file(config_path)

    logger.info(f"Config file not found at {config_path}, checking environment variables")
    return Config.load_from_env()

# Global config instance
config = load_config()
