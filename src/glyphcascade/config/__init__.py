"""Configuration management for glyphcascade.

This module provides configuration management using Pydantic models.
Configuration can be provided via CLI arguments, a project file or defaults.

Key classes:
- RenderSettings: Stroke thickness used for measuring geometry
- FontMetrics: Default bearings and guide lines
- CascadeConfig: Propagation settings
- LoggingConfig: Logging settings
- GlyphCascadeSettings: Main application settings
"""

from glyphcascade.config.settings import (
    CascadeConfig,
    FontMetrics,
    GlyphCascadeSettings,
    LoggingConfig,
    RenderSettings,
    get_default_settings,
)

__all__ = [
    "CascadeConfig",
    "FontMetrics",
    "GlyphCascadeSettings",
    "LoggingConfig",
    "RenderSettings",
    "get_default_settings",
]
