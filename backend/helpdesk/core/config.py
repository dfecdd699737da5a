"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    APP_NAME: str = "Helpdesk"
    ENV: str = "development"

    DATABASE_URL: str = "postgresql+psycopg://postgres@localhost:5432/helpdesk"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:3000"

    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = ""
    SMTP_TLS: bool = True

    FRONTEND_BASE_URL: str = "http://localhost:3000"
    #ollama credentials
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1"
    AI_ANALYSIS_TIMEOUT_SECONDS: float = 60.0
    AI_AUTO_APPROVE_ENABLED: bool = False
    AI_NOTE_AUTO_APPROVE_THRESHOLD: float = 0.9

    # inbound mailbox polling
    MAIL_POLL_ENABLED: bool = False
    MAIL_POLL_INTERVAL_SECONDS: int = 120
    MAIL_POLL_STARTUP_DELAY_SECONDS: int = 15
    MAIL_CONNECT_TIMEOUT_SECONDS: float = 30.0
    MAIL_CYCLE_TIMEOUT_SECONDS: float = 300.0

    NOTIFICATION_WORKERS: int = 2
    ACTIVITY_LOG_MAX_LIMIT: int = 500

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def smtp_ready(self) -> bool:
        return bool(self.SMTP_HOST.strip() and self.SMTP_FROM.strip())


settings = Settings()
