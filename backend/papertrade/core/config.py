"""
Core Configuration Management
PaperTrade Platform

Environment-based settings for the database, market simulator, wallets,
order settlement, logging and the API server.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection pool settings."""
    
    model_config = SettingsConfigDict(env_prefix="DB_")
    
    echo: bool = Field(default=False, description="Log SQL statements")
    pool_size: int = Field(default=10, description="Connection pool size")
    max_overflow: int = Field(default=20, description="Max overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Recycle connections after seconds")
    lock_timeout_seconds: float = Field(default=5.0, gt=0, description="Max wait for a row lock (PostgreSQL)")


class MarketSettings(BaseSettings):
    """Simulated market data settings."""
    
    model_config = SettingsConfigDict(env_prefix="MARKET_")
    
    tick_interval_seconds: float = Field(default=60.0, gt=0, description="Seconds between price ticks")
    auto_tick: bool = Field(default=True, description="Start the tick loop on startup")
    history_size: int = Field(default=100, gt=0, description="Prices retained per symbol")
    random_seed: Optional[int] = Field(default=None, description="Seed for a reproducible random walk")
    send_timeout_seconds: float = Field(default=5.0, gt=0, description="Max time to push one message to a client")


class WalletSettings(BaseSettings):
    """Virtual wallet settings."""
    
    model_config = SettingsConfigDict(env_prefix="WALLET_")
    
    starting_balance: Decimal = Field(default=Decimal("100000"), ge=0, description="Balance of a new wallet")
    currency: Literal["USD", "EUR", "GBP", "INR"] = Field(default="USD", description="Wallet currency")


class SettlementSettings(BaseSettings):
    """Order settlement concurrency settings."""
    
    model_config = SettingsConfigDict(env_prefix="SETTLEMENT_")
    
    lock_timeout_seconds: float = Field(default=5.0, gt=0, description="Max wait for a user's settlement lock")
    max_attempts: int = Field(default=3, ge=1, description="Attempts on a storage write conflict")
    retry_backoff_seconds: float = Field(default=0.05, ge=0, description="Base delay between attempts")


class LoggingSettings(BaseSettings):
    """Logging configuration."""
    
    model_config = SettingsConfigDict(env_prefix="LOG_")
    
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )
    
    # File logging
    file_enabled: bool = Field(default=True, description="Enable file logging")
    file_path: str = Field(default="logs/papertrade.log", description="Log file path")
    error_file_path: str = Field(default="logs/error.log", description="Error log file path")
    file_rotation: str = Field(default="10 MB", description="Log rotation size")
    file_retention: str = Field(default="30 days", description="Log retention period")


class APISettings(BaseSettings):
    """API server settings."""
    
    model_config = SettingsConfigDict(env_prefix="API_")
    
    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=8000, description="API port")
    
    # CORS
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:3001",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:3001",
        ],
        description="Allowed CORS origins"
    )


class Settings(BaseSettings):
    """
    Main application settings.
    
    Aggregates all sub-settings and provides environment-based configuration.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Application
    PROJECT_NAME: str = Field(default="PaperTrade", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Environment"
    )
    DEBUG: bool = Field(default=True, description="Debug mode")
    
    # Additional allowed origins for CORS (comma-separated in env)
    ALLOWED_ORIGINS: List[str] = Field(
        default=[],
        description="Additional allowed CORS origins"
    )
    
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./papertrade.db",
        description="Async SQLAlchemy database URL"
    )
    
    @property
    def db(self) -> DatabaseSettings:
        """Get database pool settings."""
        return DatabaseSettings()
    
    @property
    def market(self) -> MarketSettings:
        """Get market simulator settings."""
        return MarketSettings()
    
    @property
    def wallet(self) -> WalletSettings:
        """Get wallet settings."""
        return WalletSettings()
    
    @property
    def settlement(self) -> SettlementSettings:
        """Get settlement settings."""
        return SettlementSettings()
    
    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings()
    
    @property
    def api(self) -> APISettings:
        """Get API settings."""
        return APISettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    
    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
