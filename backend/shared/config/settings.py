"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    # Database
    # SQLite keeps a single terminal self-contained; any SQLAlchemy URL works
    database_url: str = "sqlite:///./data/pos.db"
    database_echo: bool = False

    # Redis relay for order change notifications (empty = disabled)
    redis_url: str = ""
    order_changes_channel: str = "pos:orders:changes"
    redis_socket_timeout: int = 5

    # Server
    api_port: int = 8000

    # Environment
    environment: str = "development"
    debug: bool = True

    # Per-order write serialization
    order_lock_timeout_seconds: float = 5.0
    lock_cleanup_threshold: int = 500

    # Pricing rules
    # Delivery orders whose item subtotal reaches this amount get their
    # charges waived. 0 disables the promotion.
    free_delivery_min_subtotal: int = 0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def validate_production_settings(self) -> list[str]:
        """
        Validate settings that must be changed before running in production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        if self.environment == "production":
            if self.debug:
                errors.append("DEBUG must be False in production")

            if self.database_url.startswith("sqlite") and ":memory:" in self.database_url:
                errors.append("DATABASE_URL must not be an in-memory database in production")

        if self.order_lock_timeout_seconds <= 0:
            errors.append("ORDER_LOCK_TIMEOUT_SECONDS must be positive")

        if self.free_delivery_min_subtotal < 0:
            errors.append("FREE_DELIVERY_MIN_SUBTOTAL must not be negative")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

# Direct access to commonly used settings
DATABASE_URL = settings.database_url
REDIS_URL = settings.redis_url
