"""Propagation of one glyph edit to everything derived from it.

This module walks the dependents of an edited glyph in dependency order and
recomputes each one that must follow its components, preferring an in
place patch and falling back to full regeneration. All reads go through a
working copy of the glyph-data map so a dependent always sees the already
updated geometry of every affected glyph it is built from.

Key components:
- should_rebake: Which derivation kinds follow their components
- CascadeTask: Resumable unit of work, processed in bounded batches
- CascadeScheduler: Drives a task to completion, synchronously or on an event loop
- CascadeResult: The updates to commit plus a summary for notifications
"""

import asyncio
import heapq
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

import structlog

from glyphcascade.config import CascadeConfig
from glyphcascade.core.composite import CompositeGenerator, LayoutContext
from glyphcascade.core.graph import DependencyGraph
from glyphcascade.core.patcher import SmartPatcher
from glyphcascade.domain import Character, DerivationKind, GlyphData, is_glyph_drawn
from glyphcascade.exceptions import CascadeCancelledError
from glyphcascade.utils import CascadeLogger, CascadeStats

logger = structlog.get_logger(__name__)


def should_rebake(character: Character) -> bool:
    """Check if a dependent follows edits to its components.

    Linked copies always follow. Position and kern pairs follow unless they
    are rendered through GPOS. Composites are snapshots and never follow.
    """
    kind = character.derivation_kind
    if kind is DerivationKind.LINK:
        return True
    if kind in (DerivationKind.POSITION, DerivationKind.KERN):
        return not character.gpos
    return False


@dataclass
class CascadeResult:
    """Outcome of a completed propagation run.

    Attributes:
        source: Code point of the edited glyph
        updates: Dependent code point -> new geometry, to be committed together
        patched: Dependents updated in place, in processing order
        regenerated: Dependents rebuilt from scratch, in processing order
        missing: Dependent name -> components that kept it from being built
        renderable_pairs: Manual mark-positioning pairs involving the source
            with both sides drawn (computed on the fly, not stored)
        stats: Run statistics
    """

    source: int
    updates: dict[int, GlyphData] = field(default_factory=dict)
    patched: list[int] = field(default_factory=list)
    regenerated: list[int] = field(default_factory=list)
    missing: dict[str, list[str]] = field(default_factory=dict)
    renderable_pairs: int = 0
    stats: CascadeStats = field(default_factory=CascadeStats)

    @property
    def updated_count(self) -> int:
        """Number of dependents whose geometry changed."""
        return len(self.updates)

    @property
    def notification_count(self) -> int:
        """Count reported to the user: updated glyphs plus renderable pairs."""
        return self.updated_count + self.renderable_pairs


class CascadeTask:
    """A resumable propagation run.

    Each call to ``step`` processes at most ``batch_size`` dependents and
    returns control. The result is independent of the batch size.

    Args:
        source: Code point of the edited glyph
        new_glyph: Its new geometry
        context: Layout inputs; its glyph-data map is copied, never mutated
        graph: Dependency index
        chars_by_unicode: Character lookup by code point
        config: Batch size and patch tolerance
        cascade_logger: Progress and statistics logger
        source_metadata_changed: The source's bearings or class changed too,
            so its direct dependents are regenerated rather than patched
    """

    def __init__(
        self,
        source: int,
        new_glyph: GlyphData,
        context: LayoutContext,
        graph: DependencyGraph,
        chars_by_unicode: Mapping[int, Character],
        config: CascadeConfig | None = None,
        cascade_logger: CascadeLogger | None = None,
        source_metadata_changed: bool = False,
    ) -> None:
        self.source = source
        self.source_metadata_changed = source_metadata_changed
        self.config = config or CascadeConfig()
        self.graph = graph
        self.chars_by_unicode = chars_by_unicode
        self.cascade_logger = cascade_logger or CascadeLogger()

        self.working: dict[int, GlyphData] = dict(context.glyph_data)
        self.working[source] = new_glyph
        self.context = context.with_glyph_data(self.working)
        self.generator = CompositeGenerator(self.context)
        self.patcher = SmartPatcher(self.context, self.config.patch_tolerance)

        self.changed: set[int] = {source}
        self._ready: list[int] = []
        self._waiting: dict[int, int] = {}
        affected = set(graph.transitive_dependents(source)) - {source}
        for unicode in affected:
            upstream = sum(1 for c in graph.components_of(unicode) if c in affected)
            if upstream:
                self._waiting[unicode] = upstream
            else:
                self._ready.append(unicode)
        heapq.heapify(self._ready)
        self._result = CascadeResult(source=source, stats=self.cascade_logger.stats)
        self.processed_count = 0

    @property
    def done(self) -> bool:
        """Check if no work remains."""
        return not self._ready and not self._waiting

    @property
    def pending_count(self) -> int:
        """Affected dependents still waiting to be processed."""
        return len(self._ready) + len(self._waiting)

    def _next(self) -> int:
        if self._ready:
            return heapq.heappop(self._ready)
        # Only reachable when a cycle slipped past edit-time rejection
        unicode = min(self._waiting)
        del self._waiting[unicode]
        logger.warning("Breaking derivation cycle", glyph=unicode)
        return unicode

    def _release(self, unicode: int) -> None:
        for dependent in self.graph.dependents_of(unicode):
            if dependent in self._waiting:
                self._waiting[dependent] -= 1
                if self._waiting[dependent] == 0:
                    del self._waiting[dependent]
                    heapq.heappush(self._ready, dependent)

    def step(self) -> bool:
        """Process the next batch of dependents.

        A dependent is processed only after every affected glyph it is built
        from, so it always reads their final geometry. Ties go to the lowest
        code point.

        Returns:
            True when the run is complete
        """
        budget = self.config.batch_size
        while budget > 0 and not self.done:
            unicode = self._next()
            if any(c in self.changed for c in self.graph.components_of(unicode)):
                self._process(unicode)
                self.processed_count += 1
                budget -= 1
            self._release(unicode)
        return self.done

    def _process(self, unicode: int) -> None:
        char = self.chars_by_unicode.get(unicode)
        if char is None:
            self.cascade_logger.log_skipped(f"U+{unicode:04X}", "unknown character")
            return
        if not should_rebake(char):
            self.cascade_logger.log_skipped(char.name, "snapshot or pass-through")
            return

        data = self._try_patch(char)
        if data is None:
            data = self.generator.generate(char)
            if data is None:
                missing = self.generator.missing_components(char)
                self.cascade_logger.log_missing(char.name, missing)
                self._result.missing[char.name] = missing
                return
            self.cascade_logger.log_regenerated(char.name, "patch not possible")
            self._result.regenerated.append(unicode)

        self.working[unicode] = data
        self._result.updates[unicode] = data
        self.changed.add(unicode)

    def _changed_indices(self, char: Character) -> list[int]:
        indices = []
        for index, name in enumerate(char.components):
            component = self.context.chars_by_name.get(name)
            if component is not None and component.unicode in self.changed:
                indices.append(index)
        return indices

    def _try_patch(self, char: Character) -> GlyphData | None:
        if char.unicode is None:
            return None
        current = self.working.get(char.unicode)
        if not is_glyph_drawn(current):
            return None
        indices = self._changed_indices(char)
        if not indices:
            return None
        if self.source_metadata_changed and self.source in self.graph.components_of(
            char.unicode
        ):
            return None

        paths = list(current.paths)  # type: ignore[union-attr]
        for index in indices:
            if not current.component_paths(index):  # type: ignore[union-attr]
                return None
            component = self.context.chars_by_name[char.components[index]]
            source = self.working.get(component.unicode)  # type: ignore[arg-type]
            if not is_glyph_drawn(source):
                return None
            patched = self.patcher.patch(char, paths, index, source.paths)  # type: ignore[union-attr]
            if patched is None:
                return None
            paths = patched

        self.cascade_logger.log_patched(char.name, indices)
        self._result.patched.append(char.unicode)
        return GlyphData(paths=tuple(paths))

    def _count_renderable_pairs(self) -> int:
        count = 0
        for base, mark in self.context.mark_positioning:
            if self.source in (base, mark):
                if is_glyph_drawn(self.working.get(base)) and is_glyph_drawn(
                    self.working.get(mark)
                ):
                    count += 1
        return count

    def result(self) -> CascadeResult:
        """Get the result of a completed run.

        Raises:
            RuntimeError: If the run has not finished
        """
        if not self.done:
            raise RuntimeError("Cascade has not finished")
        self._result.renderable_pairs = self._count_renderable_pairs()
        return self._result


class CascadeScheduler:
    """Runs propagation tasks in batches with a liveness check between them.

    Example:
        scheduler = CascadeScheduler(CascadeConfig(batch_size=5))
        task = scheduler.create_task(unicode, new_glyph, context, graph, chars)
        result = scheduler.run(task, is_alive=session.is_alive)
    """

    def __init__(self, config: CascadeConfig | None = None) -> None:
        self.config = config or CascadeConfig()

    def create_task(
        self,
        source: int,
        new_glyph: GlyphData,
        context: LayoutContext,
        graph: DependencyGraph,
        chars_by_unicode: Mapping[int, Character],
        cascade_logger: CascadeLogger | None = None,
        source_metadata_changed: bool = False,
    ) -> CascadeTask:
        """Create a task for an edit of ``source``."""
        return CascadeTask(
            source,
            new_glyph,
            context,
            graph,
            chars_by_unicode,
            config=self.config,
            cascade_logger=cascade_logger,
            source_metadata_changed=source_metadata_changed,
        )

    def _begin(self, task: CascadeTask) -> float:
        start = time.time()
        task.cascade_logger.stats.start_time = start
        source = task.chars_by_unicode.get(task.source)
        task.cascade_logger.log_cascade_start(
            source.name if source else f"U+{task.source:04X}",
            len(task.graph.dependents_of(task.source)),
        )
        return start

    def _check_alive(self, task: CascadeTask, is_alive: Callable[[], bool]) -> None:
        if not is_alive():
            task.cascade_logger.log_cancelled(task.processed_count, task.pending_count)
            raise CascadeCancelledError(task.processed_count, task.pending_count)

    def _finish(self, task: CascadeTask, start: float) -> CascadeResult:
        result = task.result()
        end = time.time()
        task.cascade_logger.stats.end_time = end
        task.cascade_logger.log_cascade_complete(result.updated_count, (end - start) * 1000)
        return result

    def run(
        self,
        task: CascadeTask,
        is_alive: Callable[[], bool] = lambda: True,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> CascadeResult:
        """Run a task to completion.

        Args:
            task: Task to run
            is_alive: Liveness check consulted before every batch
            progress_callback: Optional callback(processed, pending) after each batch

        Returns:
            The completed result

        Raises:
            CascadeCancelledError: If the liveness check fails; nothing of the
                run's work is returned
        """
        start = self._begin(task)
        while True:
            self._check_alive(task, is_alive)
            finished = task.step()
            if progress_callback:
                progress_callback(task.processed_count, task.pending_count)
            if finished:
                break
        return self._finish(task, start)

    async def run_async(
        self,
        task: CascadeTask,
        is_alive: Callable[[], bool] = lambda: True,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> CascadeResult:
        """Run a task, yielding to the event loop between batches.

        Same contract as ``run``.
        """
        start = self._begin(task)
        while True:
            self._check_alive(task, is_alive)
            finished = task.step()
            if progress_callback:
                progress_callback(task.processed_count, task.pending_count)
            if finished:
                break
            await asyncio.sleep(0)
        return self._finish(task, start)
