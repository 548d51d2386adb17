from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DASHGEN_", env_file=".env", extra="ignore")

    module_path: str = "github.com/your-org/app"
    project_root: str = "."
    model_file: str | None = None
    source_patterns: List[str] = ["model/**/data.go", "model/**/*.entity.yaml"]

    force: bool = False
    dry_run: bool = False

    constants_file: str = "constants/constants.go"
    aggregator_file: str = "main.go"

    log_level: str = "INFO"


def load_settings(**overrides) -> Settings:
    """Build settings from env/.env, letting explicit (non-None) overrides win."""
    values = {k: v for k, v in overrides.items() if v is not None}
    return Settings(**values)
