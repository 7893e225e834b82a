from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str
    SETTLEMENT_TIMEOUT: float = 10.0
    DB_CONNECT_RETRIES: int = 5
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
