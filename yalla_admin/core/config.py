"""Application configuration"""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = "development"
    port: int = 8080

    # Database
    database_url: str = "sqlite:///yalla.db"

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # JWT Settings
    jwt_secret: str = "change-me-in-production-please-use-32-chars"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "YallaBusinessAdmin"
    jwt_audience: str = "YallaBusinessAdmin"
    jwt_expiration_hours: int = 24
    refresh_token_days: int = 7
    password_reset_minutes: int = 60

    # Cookies
    cookie_secure: bool = False

    # Frontend (CORS)
    frontend_url: str = "http://localhost:3000"

    # Supabase Storage
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_bucket: str = "documents"
    supabase_signed_url_ttl: int = 3600

    # Security
    enable_rate_limiting: bool = True
    rate_limit_per_minute: int = 100
    brute_force_threshold: int = 5  # failed attempts
    brute_force_lockout_duration: int = 900  # 15 minutes in seconds
    bcrypt_rounds: int = 12

    # Business defaults
    default_timezone: str = "Asia/Dushanbe"
    default_cutoff_time: str = "10:30"
    default_currency: str = "TJS"

    # Daily settlement
    settlement_enabled: bool = True
    settlement_interval_minutes: int = 30

    # Initial super admin
    super_admin_phone: str = ""
    super_admin_password: str = ""
    super_admin_name: str = "Super Admin"

    # Logging
    log_level: str = "INFO"

    # Version
    version: str = "1.0.0"

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.environment.lower() == "development"

    @property
    def async_database_url(self) -> str:
        """Database URL with an async driver"""
        url = self.database_url
        if url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @property
    def cors_origins(self) -> list[str]:
        """Allowed CORS origins"""
        return [origin.strip() for origin in self.frontend_url.split(",") if origin.strip()]


# Create settings instance
settings = Settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger("yalla-admin")
