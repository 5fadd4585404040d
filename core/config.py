"""
Configuration management using Pydantic Settings
Handles environment variables and validation
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    testing: bool = Field(default=False)

    # Application
    app_name: str = "SiteAudit"
    app_version: str = "0.1.0"

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")  # json or text

    # Scoring and detection configuration files
    scoring_config_path: str = Field(default=str(PROJECT_ROOT / "config" / "scoring.yaml"))
    detector_patterns_path: str = Field(default=str(PROJECT_ROOT / "config" / "detector_patterns.yaml"))

    # Detection
    max_concurrent_detections: int = Field(default=8, ge=1)

    # Warehouse export
    warehouse_url: str = Field(default="sqlite:////tmp/siteaudit_warehouse.db")
    warehouse_table_prefix: str = Field(default="")
    warehouse_auto_create_tables: bool = Field(default=True)
    warehouse_stream_batch_size: int = Field(default=10000, ge=1)
    warehouse_echo: bool = Field(default=False)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("warehouse_table_prefix")
    @classmethod
    def validate_table_prefix(cls, v):
        if v and not v.replace("_", "").isalnum():
            raise ValueError("Warehouse table prefix may only contain letters, digits and underscores")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Validate production-specific settings after all fields are set"""
        if self.environment == "production" and self.warehouse_url.startswith("sqlite"):
            raise ValueError("Production environment cannot export to a SQLite warehouse")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def resolve_path(self, value: str) -> Path:
        """Resolve a configured path relative to the project root"""
        path = Path(value)
        if not path.is_absolute():
            path = PROJECT_ROOT / path
        return path

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    def model_dump(self, **kwargs):
        """Override to mask credentials embedded in the warehouse URL"""
        data = super().model_dump(**kwargs)

        url = data.get("warehouse_url")
        if url and "@" in url and "://" in url:
            scheme, rest = url.split("://", 1)
            credentials, host = rest.rsplit("@", 1)
            user = credentials.split(":", 1)[0]
            data["warehouse_url"] = f"{scheme}://{user}:****@{host}"

        return data


@lru_cache()
def get_settings(env_file: Optional[str] = None) -> Settings:
    """Get cached settings instance"""
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()


# Global settings instance
settings = get_settings()
