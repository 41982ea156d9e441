from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Fixtrack Issue Workflow API"
    DATABASE_URL: str = "sqlite:///./data/fixtrack.db"
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    SQL_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = True
    # Seconds a workflow command waits for another command on the same issue.
    ISSUE_LOCK_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
