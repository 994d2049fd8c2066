import json
import logging
import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.json")

class RedisConfig(BaseModel):
    url: str = Field(default="redis://redis:6379", description="Redis connection URL")
    socket_timeout: int = Field(default=5, description="Redis socket timeout in seconds")

class RateLimitConfig(BaseModel):
    enabled: bool = Field(default=True, description="Enable rate limiting")
    max_requests: int = Field(default=5, ge=1, description="Max requests per window")
    window_seconds: int = Field(default=60, ge=1, description="Rate limit window in seconds")

class DownloadConfig(BaseModel):
    work_dir: str = Field(default="downloads", description="Directory for request-scoped temp artifacts")
    max_concurrent: int = Field(default=10, ge=1, le=100, description="Max concurrent downloads")
    info_timeout_seconds: float = Field(default=60, gt=0, description="Ceiling for the info extractor")
    fetch_timeout_seconds: float = Field(default=3600, gt=0, description="Ceiling for each stream fetch")
    mux_timeout_seconds: float = Field(default=1800, gt=0, description="Ceiling for the mux process")
    chunk_size: int = Field(default=1024 * 1024, ge=4096, description="Bytes per streamed chunk")
    merge_container: str = Field(default="mp4", description="Container for muxed video+audio output")
    default_filename: str = Field(default="video", description="Filename used when the requested one sanitizes to empty")

class SecurityConfig(BaseModel):
    enable_ssrf_protection: bool = Field(default=True, description="Enable SSRF protection")
    allow_private_ips: bool = Field(default=False, description="Allow private IP ranges")
    allow_localhost: bool = Field(default=False, description="Allow localhost access")

class YtDlpConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    js_runtime: Optional[str] = Field(default=None, description="JS runtime (e.g., deno:/usr/local/bin/deno)")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout passed to yt-dlp")
    enable_live_streams: bool = Field(default=False, description="Allow live stream downloads")
    rank_audio: bool = Field(default=False, description="Pick the highest-bitrate audio instead of the first one")

class FfmpegConfig(BaseModel):
    binary: str = Field(default="ffmpeg", description="ffmpeg executable")

class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: list = Field(default=["en", "ja"], description="Supported locales")

class ApiConfig(BaseModel):
    title: str = Field(default="ytmux API", description="API title")
    description: str = Field(default="Fetch, mux and stream media formats", description="API description")
    version: str = Field(default="1.0.0", description="API version")
    cors_origins: list = Field(default=["*"], description="CORS allowed origins")
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")
    debug: bool = Field(default=False, description="Enable debug mode")

class Config(BaseSettings):
    """Main configuration model"""
    model_config = SettingsConfigDict(env_prefix="YTMUX_", env_nested_delimiter="__")

    redis: RedisConfig = Field(default_factory=RedisConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    ffmpeg: FfmpegConfig = Field(default_factory=FfmpegConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def load_from_file(cls, config_path: str = "config.json") -> "Config":
        """Load configuration from JSON file"""
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
            logger.info(f"Configuration loaded from {config_path}")
            return cls(**config_data)
        except Exception as e:
            logger.error(f"Failed to load config from {config_path}: {str(e)}")
            logger.info("Using environment/default configuration")
        return cls()

def load_config() -> Config:
    """Load configuration with priority: config file > env vars > defaults"""
    if os.path.exists(CONFIG_PATH):
        return Config.load_from_file(CONFIG_PATH)

    logger.info(f"Config file not found at {CONFIG_PATH}, checking environment variables")
    return Config()

config = load_config()
