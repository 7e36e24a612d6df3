"""
Configuration settings for permiso.

Values come from the environment (``PERMISO_`` prefix) or a ``.env`` file.
"""
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PermisoSettings(BaseSettings):
    """Runtime settings for the permission engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PERMISO_",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = Field(default="permiso")
    environment: str = Field(default="development")

    # Storage
    storage_backend: Literal["postgres", "memory"] = Field(default="postgres")
    database_url: Optional[str] = Field(default=None)
    db_pool_min_size: int = Field(default=2, ge=1)
    db_pool_max_size: int = Field(default=10, ge=1)
    db_command_timeout: float = Field(default=60.0, gt=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_verbosity: str = Field(default="NORMAL")
    log_format: Literal["simple", "detailed", "json"] = Field(default="simple")
    enable_sql_logging: bool = Field(default=False)

    @field_validator("log_level", "log_verbosity")
    @classmethod
    def uppercase(cls, v: str) -> str:
        return v.upper()

    @field_validator("db_pool_max_size")
    @classmethod
    def validate_pool_size(cls, v: int, info) -> int:
        min_size = info.data.get("db_pool_min_size", 1)
        if v < min_size:
            raise ValueError(f"db_pool_max_size ({v}) must be >= db_pool_min_size ({min_size})")
        return v

    def pool_config(self) -> dict:
        """Keyword arguments for DatabaseManager."""
        return {
            "min_size": self.db_pool_min_size,
            "max_size": self.db_pool_max_size,
            "command_timeout": self.db_command_timeout,
        }


@lru_cache()
def get_settings() -> PermisoSettings:
    """Get cached settings instance."""
    return PermisoSettings()
