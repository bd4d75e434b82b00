"""Command-line interface for glyphcascade.

This module provides the CLI using Typer with rich output for
user-friendly feedback.

Key features:
- Project summaries and dependent listings
- Propagation, regeneration and delete with baking
- Bulk transforms and font outline import
"""

from glyphcascade.cli.app import cli, main

__all__ = ["cli", "main"]
