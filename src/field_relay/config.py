"""Configuration for field-relay."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FIELD_RELAY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service_name: str = "field-relay"
    host: str = "0.0.0.0"
    port: int = 5000
    # JSON list in the environment, e.g. FIELD_RELAY_CORS_ORIGINS='["http://localhost:3000"]'
    cors_origins: list[str] = ["http://localhost:3000", "http://192.168.0.94:3000"]
    viewer_queue_size: int = 16
    log_level: str = "INFO"


settings = Settings()
