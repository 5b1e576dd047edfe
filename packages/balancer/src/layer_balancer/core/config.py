from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LogFormat = Literal["json", "console"]

# ListLayerVersions accepts at most 50 items per page.
MAX_PAGE_SIZE = 50


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LAYER_BALANCER_",
        env_file=".env",
        extra="ignore",
    )

    run_root: Path = Field(default=Path("_runs"))
    log_level: str = Field(default="INFO")
    log_format: LogFormat = Field(default="console")

    page_size: int = Field(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    metadata_timeout_s: float = Field(default=5.0, gt=0)
    download_timeout_s: float = Field(default=5.0, gt=0)

    # transport retry policy for the Lambda API
    max_attempts: int = Field(default=5, ge=1)
    max_backoff_s: float = Field(default=1.0, ge=0)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    return Settings()
