from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite+aiosqlite:///./splitledger.db"
    SQL_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = False

    JWT_SECRET: str = "change-me"
    JWT_ALGO: str = "HS256"

    DEFAULT_CURRENCY: str = "USD"
    LOG_LEVEL: str = "INFO"


settings = Settings()
