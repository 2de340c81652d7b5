from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite+aiosqlite:///./archipelago.db"
    sqlite_busy_timeout_seconds: float = 15.0
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Soft currency used for shop trades, hot spring fees and treasuries
    virtual_currency_code: str = "PS"

    # Optimistic-concurrency attempts per read-modify-write before a 409
    transaction_max_attempts: int = 3

    # Background completion sweep; 0 disables the sweeper task
    construction_sweep_interval_seconds: int = 60

    map_width: int = 100
    map_height: int = 100


settings = Settings()
