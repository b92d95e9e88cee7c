"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Rulesets shipped with the package
DEFAULT_RULESETS_DIR = Path(__file__).parent.parent / "rulesets"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application environment
    env: Literal["dev", "test", "staging", "prod"] = "dev"

    # Server
    host: str = "127.0.0.1"
    port: int = 3030

    # Logging
    log_level: str = "INFO"

    # Rulesets
    rulesets_dir: Path = DEFAULT_RULESETS_DIR
    base_ruleset: str = "base.yaml"
    overlay_rulesets: list[str] = ["overlay-c1.yaml", "overlay-c2.yaml"]

    # Request body cap for POST endpoints (bytes)
    max_body_bytes: int = 16 * 1024

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.env == "dev"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
