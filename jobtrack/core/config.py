"""Configuration models and YAML loader for the job-search tracker."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator

OPPORTUNITY_PAGE_SIZES = (10, 20, 50, 100, 250)
LOG_PAGE_SIZES = (5, 10, 25, 50)

SortMode = Literal["newest", "oldest"]


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobtrack.db"


class ViewConfig(BaseModel):
    """Defaults for the opportunity table and the activity log."""

    opportunities_per_page: int = 10
    log_entries_per_page: int = 10
    default_sort: SortMode = "newest"
    recency_window_minutes: int = Field(default=60, ge=1)

    @field_validator("opportunities_per_page")
    @classmethod
    def opportunity_page_size_allowed(cls, v: int) -> int:
        if v not in OPPORTUNITY_PAGE_SIZES:
            msg = f"opportunities_per_page must be one of {OPPORTUNITY_PAGE_SIZES}, got {v}"
            raise ValueError(msg)
        return v

    @field_validator("log_entries_per_page")
    @classmethod
    def log_page_size_allowed(cls, v: int) -> int:
        if v not in LOG_PAGE_SIZES:
            msg = f"log_entries_per_page must be one of {LOG_PAGE_SIZES}, got {v}"
            raise ValueError(msg)
        return v


class PdfConfig(BaseModel):
    """Layout knobs for the tabular PDF export."""

    accent_color: str = "#2196F3"
    truncate_length: int = Field(default=32, ge=4)
    rich_table: bool = True
    render_delay_ms: int = Field(default=300, ge=0)
    bottom_margin: float = Field(default=54.0, ge=0.0)

    @field_validator("accent_color")
    @classmethod
    def hex_color(cls, v: str) -> str:
        v = v.strip()
        if len(v) != 7 or not v.startswith("#"):
            msg = f"accent_color must look like #RRGGBB, got '{v}'"
            raise ValueError(msg)
        int(v[1:], 16)
        return v.upper()


class ExportConfig(BaseModel):
    """Where and how exports are written."""

    output_dir: str = "exports"
    pdf: PdfConfig = Field(default_factory=PdfConfig)


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    views: ViewConfig = Field(default_factory=ViewConfig)
    exports: ExportConfig = Field(default_factory=ExportConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
