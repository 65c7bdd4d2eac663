"""
assessment_engine/config/settings.py
Process configuration loaded from the environment (.env supported)
"""
import os
import logging
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

from assessment_engine.config.feature_flags import get_bool_env

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./assessments.db"

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8000",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:8000",
]


@dataclass
class Settings:
    """Runtime settings. Build with Settings.from_env() at startup."""

    database_url: str = DEFAULT_DATABASE_URL
    jwt_secret_key: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    log_level: str = "INFO"
    environment: str = "development"
    debug: bool = False
    auto_create_tables: bool = True
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    grading_rate_limit: str = "120/minute"
    rate_limit_enabled: bool = True

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls, env_file: str = None) -> "Settings":
        """
        Load settings from environment variables.

        A .env file is read first (if present) without overriding variables
        already set in the process environment.
        """
        load_dotenv(dotenv_path=env_file)

        origins = list(DEFAULT_ORIGINS)
        extra_origins = os.getenv("ALLOWED_ORIGINS", "").split(",")
        origins.extend(o.strip() for o in extra_origins if o.strip())

        database_url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        if not database_url:
            raise ValueError("DATABASE_URL environment variable is empty")

        settings = cls(
            database_url=database_url,
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", cls.jwt_secret_key),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            environment=os.getenv("ENVIRONMENT", cls.environment),
            debug=get_bool_env("DEBUG", False),
            auto_create_tables=get_bool_env("AUTO_CREATE_TABLES", True),
            allowed_origins=origins,
            grading_rate_limit=os.getenv("GRADING_RATE_LIMIT", cls.grading_rate_limit),
            rate_limit_enabled=get_bool_env("RATE_LIMIT_ENABLED", True),
        )

        if settings.jwt_secret_key == cls.jwt_secret_key and not settings.is_development:
            logger.warning("JWT_SECRET_KEY is using the development default outside development")

        return settings
