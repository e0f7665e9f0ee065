from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite+aiosqlite:///./txncat.db"
    db_echo: bool = False

    # Decision policy defaults (can be retuned at runtime)
    description_threshold: float = 75
    vendor_threshold: float = 60
    description_advantage: float = 1.1

    # Fuzzy matching
    min_valid_score: int = 50

    # Re-categorization sweeps
    recategorize_batch_size: int = 50
    recategorize_job_history: int = 100

    # Fallback category
    unknown_category_name: str = "Unknown"


settings = Settings()
