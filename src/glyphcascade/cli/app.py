"""CLI application entry point for glyphcascade.

This module provides the command line interface using Typer. Every command
works on a JSON project snapshot; commands that change the project write
``{name}-updated.json`` unless ``--output`` is given.
"""

from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer

from glyphcascade import __version__
from glyphcascade.cli.output import (
    RichNotificationSink,
    console,
    print_cascade_summary,
    print_error,
    print_glyph_list,
    print_header,
    print_project_info,
    print_saved,
    print_step,
)
from glyphcascade.core import GlyphSession, ProjectState
from glyphcascade.domain import Character, is_glyph_drawn
from glyphcascade.exceptions import (
    GlyphCascadeError,
    MissingComponentError,
    ProjectLoadError,
    ProjectSaveError,
)
from glyphcascade.io import FontGlyphImporter, ProjectReader, ProjectWriter
from glyphcascade.utils import configure_logging

# Create the Typer app
app = typer.Typer(
    name="glyphcascade",
    help="Keep derived glyphs consistent with the glyphs they are built from.",
    add_completion=False,
    no_args_is_help=True,
)


@dataclass
class CliOptions:
    """Options shared by all commands."""

    quiet: bool = False


ProjectArg = Annotated[
    Path,
    typer.Argument(help="Path to the JSON project file", show_default=False),
]
GlyphArg = Annotated[
    str,
    typer.Argument(help="Glyph name or code point (U+XXXX)", show_default=False),
]
OutputOpt = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Output path (default: {name}-updated.json)"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]Glyphcascade[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            help="Write detailed logs to file",
        ),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            help="Logging level (DEBUG|INFO|WARNING|ERROR)",
        ),
    ] = "WARNING",
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Minimal console output",
        ),
    ] = False,
    _version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Keep derived glyphs consistent with the glyphs they are built from."""
    configure_logging(log_file=log_file, console_level=log_level, quiet=quiet)
    ctx.obj = CliOptions(quiet=quiet)


def _options(ctx: typer.Context) -> CliOptions:
    return ctx.obj if isinstance(ctx.obj, CliOptions) else CliOptions()


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Map project errors to a printed message and exit code 1."""
    try:
        yield
    except ProjectLoadError as e:
        print_error(f"Could not load project: {e.reason}")
        raise typer.Exit(code=1)
    except ProjectSaveError as e:
        print_error(f"Could not save project: {e.reason}")
        raise typer.Exit(code=1)
    except MissingComponentError as e:
        print_error(str(e), details="Draw the listed components first.")
        raise typer.Exit(code=1)
    except GlyphCascadeError as e:
        print_error(str(e))
        raise typer.Exit(code=1)


def _parse_glyph_ref(ref: str) -> str | int:
    if ref.upper().startswith("U+"):
        try:
            return int(ref[2:], 16)
        except ValueError:
            raise typer.BadParameter(f"Invalid code point: {ref}") from None
    return ref


def _resolve(state: ProjectState, ref: str) -> Character:
    """Look up a glyph by name or U+XXXX code point."""
    char = state.get(_parse_glyph_ref(ref))
    if char.unicode is None:
        raise typer.BadParameter(f"'{char.name}' has no code point")
    return char


def _open_session(ctx: typer.Context, project: Path) -> GlyphSession:
    state = ProjectReader(project).load()
    return GlyphSession(state, sink=RichNotificationSink(quiet=_options(ctx).quiet))


def _write(ctx: typer.Context, session: GlyphSession, project: Path, output: Path | None) -> None:
    output_path = output or ProjectWriter.get_updated_path(project)
    ProjectWriter(output_path).save(session.state)
    if not _options(ctx).quiet:
        print_saved(str(output_path))


@app.command()
def info(ctx: typer.Context, project: ProjectArg) -> None:
    """Show a summary of a project and its derivation graph."""
    with _handle_errors():
        session = _open_session(ctx, project)
        state = session.state

        derived = Counter(
            c.derivation_kind.value if c.derivation_kind else "free"
            for c in state.characters.values()
        )
        drawn = sum(1 for g in state.glyph_data.values() if is_glyph_drawn(g))
        edges = len(session.graph)

        print_header(__version__)
        print_project_info(str(project), len(state.characters), drawn, dict(derived), edges)

        cycle = session.graph.find_cycle()
        if cycle is not None:
            names = [state.chars_by_unicode[u].name for u in cycle if u in state.chars_by_unicode]
            print_error("Cyclic derivation", details=" -> ".join(names))


@app.command()
def dependents(
    ctx: typer.Context,
    project: ProjectArg,
    glyph: GlyphArg,
    transitive: Annotated[
        bool,
        typer.Option("--transitive", "-t", help="Include dependents of dependents"),
    ] = False,
) -> None:
    """List the glyphs derived from a glyph."""
    with _handle_errors():
        session = _open_session(ctx, project)
        char = _resolve(session.state, glyph)
        unicode = char.unicode
        if transitive:
            found = session.graph.transitive_dependents(unicode)  # type: ignore[arg-type]
        else:
            found = sorted(session.graph.dependents_of(unicode))  # type: ignore[arg-type]
        names = [session.state.chars_by_unicode[u].name for u in found]
        print_glyph_list(f"Dependents of {char.name}", names)


@app.command()
def propagate(
    ctx: typer.Context,
    project: ProjectArg,
    glyph: GlyphArg,
    output: OutputOpt = None,
) -> None:
    """Push a glyph's current geometry to every glyph derived from it."""
    quiet = _options(ctx).quiet
    with _handle_errors():
        session = _open_session(ctx, project)
        char = _resolve(session.state, glyph)
        if not quiet:
            print_step(f"Propagating {char.name}")
        result = session.propagate(char.unicode)  # type: ignore[arg-type]
        if result is None:
            console.print(f"  '{char.name}' is not drawn; nothing to propagate")
            raise typer.Exit(code=0)
        if not quiet:
            print_cascade_summary(result.stats)
        _write(ctx, session, project, output)


@app.command()
def regenerate(
    ctx: typer.Context,
    project: ProjectArg,
    glyph: GlyphArg,
    output: OutputOpt = None,
    no_propagate: Annotated[
        bool,
        typer.Option("--no-propagate", help="Do not update glyphs derived from this one"),
    ] = False,
) -> None:
    """Rebuild a derived glyph from its components."""
    with _handle_errors():
        session = _open_session(ctx, project)
        char = _resolve(session.state, glyph)
        if not _options(ctx).quiet:
            print_step(f"Regenerating {char.name}")
        session.regenerate(char.unicode, propagate=not no_propagate)  # type: ignore[arg-type]
        _write(ctx, session, project, output)


@app.command()
def delete(
    ctx: typer.Context,
    project: ProjectArg,
    glyph: GlyphArg,
    output: OutputOpt = None,
) -> None:
    """Delete a glyph, baking the glyphs derived from it."""
    with _handle_errors():
        session = _open_session(ctx, project)
        char = _resolve(session.state, glyph)
        session.delete(char.unicode)  # type: ignore[arg-type]
        _write(ctx, session, project, output)


@app.command()
def transform(
    ctx: typer.Context,
    project: ProjectArg,
    glyphs: Annotated[
        list[str],
        typer.Argument(help="Glyph names or code points", show_default=False),
    ],
    scale_x: Annotated[float, typer.Option("--scale-x", help="Horizontal scale")] = 1.0,
    scale_y: Annotated[float, typer.Option("--scale-y", help="Vertical scale")] = 1.0,
    rotate: Annotated[float, typer.Option("--rotate", "-r", help="Rotation in degrees")] = 0.0,
    flip_h: Annotated[bool, typer.Option("--flip-h", help="Mirror horizontally")] = False,
    flip_v: Annotated[bool, typer.Option("--flip-v", help="Mirror vertically")] = False,
    no_propagate: Annotated[
        bool,
        typer.Option("--no-propagate", help="Do not update glyphs derived from these"),
    ] = False,
    output: OutputOpt = None,
) -> None:
    """Scale, rotate or flip glyphs about their own centers."""
    if scale_x <= 0 or scale_y <= 0:
        print_error("Scale factors must be positive")
        raise typer.Exit(code=1)

    with _handle_errors():
        session = _open_session(ctx, project)
        unicodes = [_resolve(session.state, g).unicode for g in glyphs]
        session.bulk_transform(
            unicodes,  # type: ignore[arg-type]
            scale_x=scale_x,
            scale_y=scale_y,
            rotation=rotate,
            flip_h=flip_h,
            flip_v=flip_v,
            propagate=not no_propagate,
        )
        _write(ctx, session, project, output)


@app.command("import-font")
def import_font(
    ctx: typer.Context,
    project: ProjectArg,
    font: Annotated[
        Path,
        typer.Argument(help="Path to a TTF/OTF font file", show_default=False),
    ],
    no_propagate: Annotated[
        bool,
        typer.Option("--no-propagate", help="Do not update derived glyphs"),
    ] = False,
    output: OutputOpt = None,
) -> None:
    """Import outlines for the project's free-standing glyphs from a font."""
    quiet = _options(ctx).quiet
    with _handle_errors():
        session = _open_session(ctx, project)
        state = session.state
        targets = [
            c.unicode
            for c in state.characters.values()
            if c.unicode is not None and not c.is_derived()
        ]
        if not quiet:
            print_step(f"Reading {len(targets)} glyphs from {font.name}")

        glyphs = FontGlyphImporter(font, state.settings.metrics).read(targets)
        glyphs = {u: g for u, g in glyphs.items() if is_glyph_drawn(g)}
        session.import_glyphs(glyphs)
        if not no_propagate:
            for unicode in sorted(glyphs):
                session.propagate(unicode, silent=True)
        _write(ctx, session, project, output)


def cli() -> None:
    """Entry point for the CLI application."""
    app()


def main() -> None:
    """Entry point for the CLI application (alias for cli)."""
    cli()


if __name__ == "__main__":
    cli()
