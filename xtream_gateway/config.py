"""
Configuration management for the Xtream gateway.
Uses pydantic-settings for environment variable loading.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    app_name: str = "Xtream Gateway"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS Configuration
    cors_allow_origin: str = "*"
    cors_allow_headers: list[str] = ["authorization", "x-client-info", "apikey", "content-type"]

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 120

    # Database
    database_path: str = "data/xtream.db"

    # Advertised in server_info; Xtream clients build stream URLs from these
    server_url: str = "localhost"
    server_port: str = "80"
    https_port: str = "443"
    server_protocol: str = "http"
    rtmp_port: str = ""
    timezone: str = "UTC"
    allowed_output_formats: list[str] = ["m3u8", "ts", "rtmp"]

    # EPG
    short_epg_limit: int = 4
    xmltv_past_hours: int = 24
    xmltv_future_days: int = 7
    xmltv_cache_seconds: int = 3600  # 1 hour

    # Synthesized HLS manifests
    manifest_target_duration: int = 10

    # Pydantic V2 configuration
    model_config = SettingsConfigDict(env_prefix="XTREAM_", env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
