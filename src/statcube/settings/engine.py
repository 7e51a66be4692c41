"""Embedded analytical engine configuration."""

from typing import Optional

from pydantic import BaseModel, Field


class EngineSettings(BaseModel):
    """DuckDB session settings applied when a build connection opens."""

    threads: Optional[int] = Field(
        default=None,
        ge=1,
        le=256,
        description="Worker threads for the embedded engine (engine default when unset)"
    )
    memory_limit: Optional[str] = Field(
        default=None,
        pattern=r"^\d+(\.\d+)?\s*(KB|MB|GB|TB|KiB|MiB|GiB|TiB)$",
        description="Memory cap for one build, e.g. '2GB'"
    )
    temp_directory: Optional[str] = Field(
        default=None,
        description="Spill directory for out-of-core operations"
    )
    preserve_insertion_order: bool = Field(
        default=True,
        description="Disable to let the engine reorder rows for lower memory use"
    )
    enable_spatial: bool = Field(
        default=True,
        description="Allow installing the spatial extension for spreadsheet load and export"
    )
