"""Application configuration via environment variables."""
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Event Planner"
    debug: bool = False
    log_dir: Path = Path.home() / ".logs" / "event-planner"
    admin_token: str = ""  # Empty disables the administrative actor

    # Server
    host: str = "0.0.0.0"  # Bind to all interfaces for external access
    port: int = 8000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all
    public_base_url: str = "http://localhost:8000"  # Used to build signup/manage links

    # Database
    database_url: str = "sqlite:///./event_planner.db"
    db_timeout_seconds: float = 5.0

    # Lifecycle windows (hours relative to event start)
    edit_lock_hours: float = 24
    coordinator_cancel_hours: float = 6
    signup_cutoff_hours: float = 1
    completion_grace_hours: float = 4

    # Sweeper
    sweeper_enabled: bool = True
    sweep_interval_minutes: int = 15

    # Email (SMTP)
    email_enabled: bool = False
    smtp_server: str = ""
    smtp_port: int = 587
    sender_email: str = ""
    sender_password: str = ""
    ops_email: str = ""  # Blind-copied on every cancellation notice
    email_timeout_seconds: float = 10.0
    notify_max_workers: int = 8


settings = Settings()
