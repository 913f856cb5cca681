"""
Application settings
- Database, Redis, executor and simulation defaults are read from the environment.
- The documented simulation defaults are used whenever no simulation_config row exists.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///tracking.db"

    # Redis (empty or unreachable -> in-memory event bus)
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Business window and every persisted timestamp use this zone
    TIMEZONE: str = "America/Sao_Paulo"

    # Public base URL used in tracking links
    APP_URL: str = "http://localhost:3000"

    # Scheduled event executor
    EXECUTOR_ENABLED: bool = True
    EXECUTOR_INTERVAL_SECONDS: float = 60.0
    EXECUTOR_BATCH_SIZE: int = 50

    # WooCommerce webhook shared secret (empty -> no check)
    WEBHOOK_API_KEY: str = ""

    # Statuses that produce an outbound notification request
    NOTIFY_STATUSES: list[str] = [
        "pending", "collected", "in_transit", "out_for_delivery", "delivered", "failed",
    ]

    # Simulation defaults
    DEFAULT_ORIGIN_COMPANY_NAME: str = "Cargo Flash"
    DEFAULT_ORIGIN_ADDRESS: str = ""
    DEFAULT_ORIGIN_CITY: str = "São Paulo"
    DEFAULT_ORIGIN_STATE: str = "SP"
    DEFAULT_ORIGIN_ZIP: str = ""
    DEFAULT_ORIGIN_LAT: float = -23.5505
    DEFAULT_ORIGIN_LNG: float = -46.6333
    DEFAULT_MIN_DELIVERY_DAYS: int = 15
    DEFAULT_MAX_DELIVERY_DAYS: int = 19
    DEFAULT_UPDATE_START_HOUR: int = 8
    DEFAULT_UPDATE_END_HOUR: int = 18
    DEFAULT_SKIP_WEEKENDS: bool = True
    DEFAULT_DAYS_PER_CHECKPOINT: float = 1.5
    DEFAULT_MAX_CHECKPOINTS: int = 12

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
