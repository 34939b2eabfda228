"""Application configuration using Pydantic Settings."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra environment variables not defined in Settings
    )

    # Application
    APP_NAME: str = "Treasury Movement Simulator"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./treasury.db"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600

    # Seed the starter accounts on startup (idempotent)
    SEED_ON_STARTUP: bool = True

    # CORS
    CORS_ORIGINS: list[str] = ["*"]
    CORS_CREDENTIALS: bool = False
    CORS_METHODS: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_HEADERS: list[str] = ["Content-Type", "Authorization", "Idempotency-Key"]

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    ACCOUNT_RATE_LIMIT: str = "100/15minutes"
    TRANSACTION_RATE_LIMIT: str = "50/15minutes"

    # Transfer engine
    TRANSFER_MAX_ATTEMPTS: int = 3  # Attempts per transfer before TransferFailed
    TRANSFER_RETRY_BACKOFF_SECONDS: float = 0.05  # Multiplied by attempt number

    # Static exchange rates, "FROM_TO_TO" -> multiplier (8 decimal places).
    # Rates are not reciprocal: KES->NGN and NGN->KES are published separately.
    EXCHANGE_RATES: dict[str, Decimal] = {
        "USD_TO_KES": Decimal("150"),
        "USD_TO_NGN": Decimal("800"),
        "KES_TO_USD": Decimal("0.00666667"),
        "KES_TO_NGN": Decimal("5.33"),
        "NGN_TO_USD": Decimal("0.00125"),
        "NGN_TO_KES": Decimal("0.18761726"),
    }

    # Logging Configuration
    LOGGING_CONFIG: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": "INFO",
            "handlers": ["console"],
        },
        "loggers": {
            "treasury": {
                "level": "INFO",
            },
        },
    }


settings = Settings()
