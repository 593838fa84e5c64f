"""Application configuration from environment."""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from env / .env. Read once per process."""

    app_name: str = "Sensus"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./sensus.db"
    database_echo: bool = False

    # JWT
    secret_key: str = "change-me-in-production-use-env"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    token_issuer: str = "sensus-app"
    token_audience: str = "sensus-users"

    # Passwords
    bcrypt_rounds: int = 12

    # Cache (optional; None disables Redis)
    redis_url: str | None = None
    user_cache_ttl_seconds: int = 60 * 60
    config_cache_ttl_seconds: int = 30 * 60

    # Feature flags
    rate_limit_enabled: bool = True
    cors_enabled: bool = True
    compression_enabled: bool = True
    security_headers_enabled: bool = True
    cors_origins: list[str] = ["http://localhost:4321", "http://localhost:3000"]

    # Request gate
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 100
    rate_limit_endpoint_limits: dict[str, int] = {
        "/api/v1/users/login": 5,
        "/api/v1/users/register": 3,
        "/api/v1/diary": 50,
        "/api/v1/evaluations": 20,
    }
    max_login_attempts: int = 5
    lockout_duration_seconds: int = 15 * 60
    blocked_ips: list[str] = []
    block_suspicious_ips: bool = True
    suspicious_block_seconds: int = 60 * 60
    trust_proxy_headers: bool = False

    # Jobs
    notification_retention_days: int = 365
    diary_reminder_after_days: int = 1
    test_reminder_after_days: int = 7

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        frozen = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
