"""Configuration models and YAML loader for the benchmark workbench."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class ApiConfig(BaseModel):
    """Backend connection settings."""

    base_url: str = "http://localhost:8080"
    benchmark_path: str = "/query-daily-service/api/v1/admin/benchmark"
    prompts_path: str = "/query-daily-service/api/v1/admin/prompts"
    embeddings_path: str = "/query-daily-service/api/v1/admin/embeddings"
    rag_top_k: int = Field(default=5, ge=1)
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    token_env: str = "BENCHMARK_API_TOKEN"

    @field_validator("base_url")
    @classmethod
    def base_url_not_empty(cls, v: str) -> str:
        if not v.strip():
            msg = "base_url must not be empty"
            raise ValueError(msg)
        return v.strip().rstrip("/")

    @property
    def token(self) -> str | None:
        """Bearer token read from the configured environment variable."""
        return os.environ.get(self.token_env) or None


class PollingConfig(BaseModel):
    """Status polling cadence for a running job."""

    interval_seconds: float = Field(default=2.0, ge=0.0)
    # None retries forever.
    max_consecutive_failures: int | None = Field(default=30, ge=1)


class DuplicateConfig(BaseModel):
    """Severity bands for the overall duplicate score."""

    moderate_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    high_threshold: float = Field(default=0.7, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def thresholds_ordered(self) -> "DuplicateConfig":
        if self.moderate_threshold >= self.high_threshold:
            msg = "moderate_threshold must be lower than high_threshold"
            raise ValueError(msg)
        return self


class CostRates(BaseModel):
    """USD price per token used to estimate per-question cost."""

    input_per_token: float = Field(default=0.00001, ge=0.0)
    output_per_token: float = Field(default=0.00003, ge=0.0)


class HistoryConfig(BaseModel):
    """Defaults for history listing and windowed comparison."""

    window_days: int = Field(default=30, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    duplicates: DuplicateConfig = Field(default_factory=DuplicateConfig)
    costs: CostRates = Field(default_factory=CostRates)
    history: HistoryConfig = Field(default_factory=HistoryConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
