"""Utility functions for glyphcascade.

This module provides utility functions including:

- Logging setup and configuration
- Propagation statistics
"""

from glyphcascade.utils.logging import (
    CascadeLogger,
    CascadeStats,
    configure_logging,
)

__all__ = [
    "CascadeLogger",
    "CascadeStats",
    "configure_logging",
]
