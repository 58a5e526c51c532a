from typing import List, Literal, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: str = Field("development", description="Deployment environment")
    log_level: str = Field("INFO", description="Root logging level")
    storage_type: Literal["memory", "redis"] = Field("memory", description="Project storage backend")
    redis_cluster_nodes: List[Tuple[str, int]] = Field(
        [("localhost", 7001), ("localhost", 7002), ("localhost", 7003)], description="Redis cluster node addresses"
    )
    redis_host: str = Field("localhost", description="Redis host")
    redis_port: int = Field(6379, description="Redis port")
    redis_max_connections: int = Field(10, description="Redis max connections")
    cache_expiry: int = Field(300, description="Project snapshot cache expiry in seconds")
    cache_maxsize: int = Field(100, description="Project snapshot cache maximum size")
    export_dir: str = Field("output", description="Directory for exported decks")
    max_import_bytes: int = Field(5 * 1024 * 1024, description="Largest accepted import payload")

    model_config = SettingsConfigDict(env_prefix="FLASHDECK_", env_file=".env", env_file_encoding="utf-8")

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """
        Normalise the log level name and reject unknown levels.
        """
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


# Create a settings instance
settings = Settings()

# Export settings instance
__all__ = ['settings', 'Settings']
