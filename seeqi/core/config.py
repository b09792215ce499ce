"""Application configuration loaded from the environment."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

DEFAULT_RULES_DIR = Path(__file__).resolve().parent.parent / "rules" / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    app_name: str = "SeeQi"

    # Rules
    rules_dir_path: str | None = None
    default_constitution: str = "平和"
    rules_auto_reload: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def resolved_rules_dir(self) -> Path:
        """Return the configured rules directory, or the bundled one."""
        if self.rules_dir_path:
            return Path(self.rules_dir_path)
        return DEFAULT_RULES_DIR


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
