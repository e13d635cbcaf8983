from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+psycopg2://results:results@db:5432/school_results"
    LOG_LEVEL: str = "INFO"

    # Grade band table used by every report ("AF" or "PERCENTAGE")
    GRADING_SYSTEM: str = "AF"

    # Async activity logging (optional)
    ASYNC_QUEUE_ENABLED: bool = False
    REDIS_URL: str = "redis://redis:6379/0"
    RQ_QUEUE_NAME: str = "school_results"
    RQ_JOB_TIMEOUT_SECONDS: int = 300
    RQ_JOB_RETRY_MAX: int = 1

    # Auth
    JWT_SECRET: str = "changethis"  # Should be changed in .env
    JWT_EXPIRES_SECONDS: int = 3600  # 1 hour

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
