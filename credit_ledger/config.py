"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Ledger configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="LEDGER_", extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///./credit_ledger.db"
    db_pool_size: int = 10
    db_max_overflow: int = 10

    # Lock wait bound (also the SQLite busy timeout); statement bound is PostgreSQL only
    lock_timeout_ms: int = 5000
    statement_timeout_ms: int = 15000

    # Retry on ConcurrencyConflict
    conflict_retry_attempts: int = 3
    conflict_backoff_base: float = 0.05  # seconds, doubled per attempt

    # Credit terms
    default_terms_days: int = 30
    currency_symbol: str = "₹"

    # Service
    service_name: str = "credit-ledger"
    log_level: str = "INFO"


settings = Settings()
