"""Configuration settings for Glyphcascade."""

from pathlib import Path

from pydantic import BaseModel, Field


class RenderSettings(BaseModel):
    """Rendering settings that affect measured geometry."""

    stroke_thickness: float = Field(
        default=15.0,
        ge=0.0,
        le=500.0,
        description="Stroke thickness used to pad the bounds of stroked paths",
    )


class FontMetrics(BaseModel):
    """Font metrics in canvas coordinates (y grows downward).

    Side bearing defaults are used when a character does not carry its own.
    """

    units_per_em: int = Field(default=1000, ge=16, le=16384)
    ascender: int = Field(default=800)
    descender: int = Field(default=-200)
    default_advance_width: int = Field(default=1000, ge=0)
    default_lsb: float = Field(
        default=50.0,
        description="Left side bearing for characters that do not set one",
    )
    default_rsb: float = Field(
        default=50.0,
        description="Right side bearing for characters that do not set one",
    )
    top_line_y: float = Field(default=400.0, description="Canvas y of the top guide")
    base_line_y: float = Field(default=600.0, description="Canvas y of the base guide")


class CascadeConfig(BaseModel):
    """Configuration for dependent propagation."""

    batch_size: int = Field(
        default=5,
        ge=1,
        le=1000,
        description="Dependents processed between yields to the host event loop",
    )
    reject_cycles: bool = Field(
        default=True,
        description="Refuse derivations that would make a glyph depend on itself",
    )
    patch_tolerance: float = Field(
        default=1e-6,
        ge=0.0,
        le=1.0,
        description="Tolerance when comparing bounds before and after a smart patch",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    log_file: Path | None = Field(
        default=None,
        description="Path to log file",
    )
    log_level: str = Field(
        default="WARNING",
        description="Console log level",
    )
    file_log_level: str = Field(
        default="DEBUG",
        description="File log level (more verbose)",
    )


class GlyphCascadeSettings(BaseModel):
    """Main application settings."""

    render: RenderSettings = Field(default_factory=RenderSettings)
    metrics: FontMetrics = Field(default_factory=FontMetrics)
    cascade: CascadeConfig = Field(default_factory=CascadeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_settings() -> GlyphCascadeSettings:
    """Get default application settings."""
    return GlyphCascadeSettings()
