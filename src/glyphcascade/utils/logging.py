"""Logging utilities for Glyphcascade."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import structlog


@dataclass
class CascadeStats:
    """Statistics from one propagation run."""

    patched_count: int = 0
    regenerated_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    missing_components: list[tuple[str, list[str]]] = field(default_factory=list)
    start_time: float | None = None
    end_time: float | None = None
    was_cancelled: bool = False

    @property
    def updated_count(self) -> int:
        """Glyphs whose geometry was rewritten."""
        return self.patched_count + self.regenerated_count

    @property
    def duration_seconds(self) -> float:
        """Calculate propagation duration."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return 0.0


def configure_logging(
    log_file: Path | None = None,
    console_level: str = "WARNING",
    file_level: str = "DEBUG",
    quiet: bool = False,
) -> structlog.stdlib.BoundLogger:
    """Configure structured logging.

    Args:
        log_file: Path to log file (no file output if None)
        console_level: Logging level for console output
        file_level: Logging level for file output
        quiet: If True, suppress console output

    Returns:
        Configured structlog logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(getattr(logging, file_level.upper()))
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        )
        root_logger.addHandler(file_handler)

    if not quiet:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(getattr(logging, console_level.upper()))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger("glyphcascade")
    logger.info(
        "Logging initialized",
        log_file=str(log_file) if log_file else None,
        level=file_level,
    )

    return logger


class CascadeLogger:
    """Logger for tracking propagation progress and statistics."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger("glyphcascade.cascade")
        self._stats = CascadeStats()

    def log_cascade_start(self, source: str, direct_dependents: int) -> None:
        """Log start of a propagation run."""
        self._logger.info("Cascade started", source=source, dependents=direct_dependents)

    def log_patched(self, glyph_name: str, components: list[int]) -> None:
        """Log a dependent updated in place."""
        self._logger.debug("Dependent patched", glyph=glyph_name, components=components)
        self._stats.patched_count += 1

    def log_regenerated(self, glyph_name: str, reason: str) -> None:
        """Log a dependent rebuilt from scratch."""
        self._logger.debug("Dependent regenerated", glyph=glyph_name, reason=reason)
        self._stats.regenerated_count += 1

    def log_skipped(self, glyph_name: str, reason: str) -> None:
        """Log a dependent left untouched."""
        self._logger.debug("Dependent skipped", glyph=glyph_name, reason=reason)
        self._stats.skipped_count += 1

    def log_missing(self, glyph_name: str, missing: list[str]) -> None:
        """Log a dependent that could not be generated."""
        self._logger.warning("Missing components", glyph=glyph_name, missing=missing)
        self._stats.failed_count += 1
        self._stats.missing_components.append((glyph_name, missing))

    def log_cancelled(self, processed: int, pending: int) -> None:
        """Log an abandoned run."""
        self._logger.info("Cascade cancelled", processed=processed, pending=pending)
        self._stats.was_cancelled = True

    def log_cascade_complete(self, updated: int, duration_ms: float) -> None:
        """Log successful completion."""
        self._logger.info(
            "Cascade complete",
            updated=updated,
            patched=self._stats.patched_count,
            regenerated=self._stats.regenerated_count,
            duration_ms=round(duration_ms, 2),
        )

    @property
    def stats(self) -> CascadeStats:
        """Get current propagation statistics."""
        return self._stats
