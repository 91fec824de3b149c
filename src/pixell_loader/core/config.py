"""Configuration management for Pixell Loader."""

from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Loader and target agent configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="PIXELL_LOADER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Target agent server
    host: str = Field("127.0.0.1", description="Agent server host")
    port: int = Field(8470, description="Agent server port")

    # Staging
    staging_dir: str = Field(
        "/tmp/pixell-loader/staging",
        description="Directory on the target where transferred artifacts are written",
    )
    manifest_name: str = Field("release.yaml", description="Manifest file name inside a package")

    # Remote calls
    call_timeout_seconds: float = Field(30.0, description="Timeout for one remote runtime call")
    agent_secret: Optional[str] = Field(None, description="Bearer token shared with target agents")

    # Observability
    log_level: str = Field("INFO")
    log_format: str = Field("json")
    metrics_enabled: bool = Field(True)

    @validator("call_timeout_seconds")
    def positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("call_timeout_seconds must be positive")
        return v

    @validator("log_format")
    def known_log_format(cls, v: str) -> str:
        if v not in ("json", "console"):
            raise ValueError(f"Unsupported log format: {v}")
        return v
