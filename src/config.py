"""
config.py

Application settings for the College Staff Reporting API.
Every value can be overridden through an environment variable of the same
name or a `.env` file in the working directory.
"""

import json
from typing import Any, List, Optional

from pydantic_settings import BaseSettings


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from a JSON list or a comma-separated string."""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in v.split(",") if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "College Staff Reporting API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    API_PREFIX: str = "/api/v1"

    # Server Configuration
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 8000
    SERVER_RELOAD: bool = False

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # ==========================================
    # MCP server mount
    # ==========================================
    MCP_ENABLED: bool = True
    MCP_PATH: str = "/mcp"

    # ==========================================
    # Bootstrap
    # ==========================================
    # Seeded on startup so that the first administrator can authenticate.
    SEED_ADMIN_ID: str = "00000000-0000-0000-0000-000000000001"
    SEED_ADMIN_EMAIL: str = "admin@college.local"
    SEED_ADMIN_NAME: str = "System Administrator"
    DEFAULT_COLLEGE_NAME: str = "College of Engineering"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


settings = Settings()
