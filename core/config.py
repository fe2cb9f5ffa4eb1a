from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./ledger.db"

    JWT_SECRET: str = "change-me-in-production-please-32b"
    JWT_ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = "session"
    SESSION_TTL_HOURS: int = 24
    COOKIE_SECURE: bool = False

    # empty key disables every admin endpoint
    ADMIN_KEY: str = ""

    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    BCRYPT_ROUNDS: int = 12

    RATE_LIMIT_ENABLED: bool = True
    LOGIN_RATE_LIMIT: str = "10/minute"

    PAYOUT_TIMEZONE: str = "UTC"
    PAYOUT_HOUR: int = 0
    PAYOUT_MINUTE: int = 5
    REDIS_URL: str = "redis://localhost:6379/0"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
