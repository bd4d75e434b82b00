"""Rich console output helpers for the CLI.

This module provides user-friendly console output using Rich library
with tables, formatted messages and a notification sink.
"""

from collections.abc import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from glyphcascade.core.notifications import Level
from glyphcascade.utils import CascadeStats

console = Console()

# Unicode symbols for consistent visual language
SYM_STEP = "▸"  # Step indicator
SYM_OK = "✓"  # Success
SYM_ERR = "✗"  # Error
SYM_WARN = "!"  # Warning
SYM_DOT = "·"  # Separator/secondary info

_LEVEL_MARKUP: dict[str, str] = {
    "info": f"[dim]{SYM_DOT}[/dim]",
    "success": f"[green]{SYM_OK}[/green]",
    "warning": f"[yellow]{SYM_WARN}[/yellow]",
    "error": f"[red]{SYM_ERR}[/red]",
}


class RichNotificationSink:
    """Prints session notifications to the console."""

    def __init__(self, quiet: bool = False) -> None:
        self.quiet = quiet

    def notify(self, message: str, level: Level = "info") -> None:
        if self.quiet and level in ("info", "success"):
            return
        line = Text.from_markup(f"  {_LEVEL_MARKUP.get(level, SYM_DOT)} ")
        line.append(message)
        console.print(line)


def print_header(version: str) -> None:
    """Print application header.

    Args:
        version: Application version string
    """
    console.print(f"\n[bold]Glyphcascade[/bold] v{version}")
    console.print("─" * 44)


def print_step(message: str) -> None:
    """Print a processing step indicator.

    Args:
        message: Step description message
    """
    console.print(f"\n{SYM_STEP} {message}")


def print_project_info(
    project_path: str,
    character_count: int,
    drawn_count: int,
    derived_counts: dict[str, int],
    edge_count: int,
) -> None:
    """Print a project summary.

    Args:
        project_path: Path to the project file
        character_count: Number of characters
        drawn_count: Number of characters with drawn glyphs
        derived_counts: Derivation kind -> number of characters
        edge_count: Number of component -> dependent edges
    """
    # Use Text to safely handle paths with special characters
    line = Text("  ")
    line.append(project_path)
    console.print(line)
    console.print(
        f"  {character_count:,} characters {SYM_DOT} {drawn_count:,} drawn "
        f"{SYM_DOT} {edge_count:,} links"
    )

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Derivation")
    table.add_column("Glyphs", justify="right")
    for kind, count in derived_counts.items():
        table.add_row(kind, str(count))
    console.print(table)


def print_glyph_list(title: str, names: Sequence[str]) -> None:
    """Print a titled list of glyph names.

    Args:
        title: Heading
        names: Glyph names, in order
    """
    console.print(f"\n[bold]{title}[/bold] ({len(names)})")
    if not names:
        console.print(f"  {SYM_DOT} none")
        return
    names_str = ", ".join(names[:40])
    if len(names) > 40:
        names_str += f" {SYM_DOT}{SYM_DOT}{SYM_DOT} (+{len(names) - 40} more)"
    console.print(f"  {names_str}")


def _format_time(seconds: float) -> str:
    """Format seconds into human-readable time string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    else:
        mins = int(seconds // 60)
        secs = seconds % 60
        return f"{mins}m {secs:.1f}s"


def print_cascade_summary(stats: CascadeStats) -> None:
    """Print the statistics of a propagation run.

    Args:
        stats: Cascade statistics
    """
    console.print(
        f"  {stats.patched_count} patched {SYM_DOT} {stats.regenerated_count} regenerated "
        f"{SYM_DOT} {stats.skipped_count} skipped {SYM_DOT} "
        f"{_format_time(stats.duration_seconds)}"
    )
    for glyph_name, missing in stats.missing_components:
        console.print(f"  [yellow]{SYM_WARN}[/yellow] {glyph_name}: missing {', '.join(missing)}")


def print_saved(output_path: str) -> None:
    """Print success message with the written file.

    Args:
        output_path: Path to output file
    """
    line = Text.from_markup(f"\n[bold green]{SYM_OK} Saved[/bold green] ")
    line.append(output_path, style="bold")
    console.print(line)


def print_error(message: str, details: str | None = None) -> None:
    """Print error message.

    Args:
        message: Main error message
        details: Optional detailed error information
    """
    console.print(f"\n[bold red]{SYM_ERR} Error:[/bold red] {message}")
    if details:
        console.print(f"  {details}")
