"""Global settings.

Every user-configurable value is read from the .env file or the process
environment and loaded into this object at import time.

Usage:
    1. Run python scripts/setup_env.py to generate a .env file
    2. Or create .env by hand (see the keys below)
"""
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings - every field can be overridden from .env or env vars"""

    # ========== Branding ==========
    company_name: str = "Kraft Universe"
    app_name: str = "Workshop Tracker"

    # ========== Database ==========
    database_url: str = "sqlite:///data/workshop.db"

    # ========== Web ==========
    web_host: str = "0.0.0.0"
    web_port: int = 3000
    token_ttl_hours: int = 24

    # ========== Sign-up rules ==========
    allowed_email_domains: List[str] = ["kraftstories.com", "kraftuniverse.com"]
    min_password_length: int = 8

    # ========== Email notification function ==========
    notifications_enabled: bool = True
    functions_base_url: str = "http://localhost:54321/functions/v1"
    functions_api_key: str = ""
    notification_timeout: float = 10.0
    frontend_url: str = "http://localhost:5173"

    # ========== Files ==========
    upload_dir: str = "data/uploads"
    max_upload_size: int = 10 * 1024 * 1024
    export_dir: str = "data/exports"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# global settings instance
settings = Settings()
