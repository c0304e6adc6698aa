from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Application
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # Store
    store_backend: Literal["memory", "json", "remote"] = "memory"
    store_path: str = "data/mindlock.json"
    store_url: Optional[str] = None
    store_api_key: Optional[str] = None
    store_timeout: int = 20
    store_max_retries: int = 3
    seed_sample_data: bool = True

    # Exams
    default_exam_minutes: int = 20
    exam_durations: List[int] = [20, 45, 90]

    # Timer
    timer_tick_interval: float = 0.2

    # Sessions (seconds)
    session_idle_timeout: int = 3600
    session_result_retention: int = 600
    session_sweep_interval: float = 60.0


# Global settings instance
settings = Settings()
