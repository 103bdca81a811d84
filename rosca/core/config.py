# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration — all env-driven, zero hardcode.
Single source of truth for every tunable parameter.
"""

import os


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "rotation-service")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8005"))

    # Empty -> in-memory storage
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "300"))

    # Empty -> outbound notifications disabled
    NOTIFICATION_SERVICE_URL: str = os.getenv("NOTIFICATION_SERVICE_URL", "")
    NOTIFICATION_TIMEOUT: float = float(os.getenv("NOTIFICATION_TIMEOUT", "3.0"))

    DEFAULT_HISTORY_LIMIT: int = int(os.getenv("DEFAULT_HISTORY_LIMIT", "100"))
    MAX_HISTORY_SIZE: int = int(os.getenv("MAX_HISTORY_SIZE", "10000"))

    MIN_GROUP_NAME_LENGTH: int = int(os.getenv("MIN_GROUP_NAME_LENGTH", "3"))
    MAX_GROUP_NAME_LENGTH: int = int(os.getenv("MAX_GROUP_NAME_LENGTH", "50"))
    MIN_MEMBER_COUNT: int = int(os.getenv("MIN_MEMBER_COUNT", "2"))
    MAX_MEMBER_COUNT: int = int(os.getenv("MAX_MEMBER_COUNT", "50"))
    MIN_MONTHLY_AMOUNT: int = int(os.getenv("MIN_MONTHLY_AMOUNT", "1000"))
    MAX_MONTHLY_AMOUNT: int = int(os.getenv("MAX_MONTHLY_AMOUNT", "10000000"))
    CURRENCY_SYMBOL: str = os.getenv("CURRENCY_SYMBOL", "₦")

    # Optional fixed seed for reproducible raffles (demo / staging only)
    RAFFLE_SEED: str = os.getenv("RAFFLE_SEED", "")

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    SEED_DEFAULT_GROUPS: bool = (
        os.getenv("SEED_DEFAULT_GROUPS", "true").lower() == "true"
    )


settings = Settings()
