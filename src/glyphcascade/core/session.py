"""Editing session over an open project.

GlyphSession is the entry point collaborators use to change a project. It
owns the dependency graph, turns edits into state commands and runs the
cascade after commit saves.

Key operations:
- save / asave: Store a glyph edit; commits propagate to dependents
- delete: Bake dependents, sever them, purge pair tables, remove the glyph
- unlock / relink: Freeze a derived glyph into a composite and back
- update_dependencies: Change a glyph's derivation and components
- add_character, import_glyphs, bulk_transform, regenerate
"""

import unicodedata
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

import structlog

from glyphcascade.core.cascade import CascadeResult, CascadeScheduler, CascadeTask
from glyphcascade.core.composite import CompositeGenerator
from glyphcascade.core.geometry import transform_paths
from glyphcascade.core.graph import DependencyGraph
from glyphcascade.core.notifications import LoggingNotificationSink, NotificationSink
from glyphcascade.core.state import (
    METADATA_FIELDS,
    AddCharacter,
    BatchUpdateGlyphs,
    DeleteCharacter,
    DeleteGlyph,
    ProjectSnapshot,
    ProjectState,
    PurgePairs,
    ReplaceCharacter,
    SetGlyph,
    UpdateCharacterMetadata,
)
from glyphcascade.domain import (
    Character,
    DerivationKind,
    GlyphClass,
    GlyphData,
    is_glyph_drawn,
    normalize_transforms,
)
from glyphcascade.exceptions import (
    CascadeCancelledError,
    CascadeError,
    CyclicDerivationError,
    DerivationError,
)
from glyphcascade.utils import CascadeLogger

logger = structlog.get_logger(__name__)

STANDARD_NAMES: dict[str, int] = {
    "space": 0x20,
    "nbsp": 0xA0,
    "zwnj": 0x200C,
    "zwj": 0x200D,
}

PUA_START = 0xE000
PUA_END = 0xF8FF
PUA_A_START = 0xF0000
PUA_A_END = 0xFFFFD

MARK_CATEGORIES = frozenset({"Mn", "Mc", "Me"})


def is_pua(unicode: int) -> bool:
    """Check if a code point lies in the BMP or plane-15 private use areas."""
    return PUA_START <= unicode <= PUA_END or PUA_A_START <= unicode <= PUA_A_END


def unicode_category(unicode: int) -> str:
    """Unicode general category of a code point ("Cn" when out of range)."""
    try:
        return unicodedata.category(chr(unicode))
    except (ValueError, OverflowError):
        return "Cn"


@dataclass
class UndoToken:
    """Everything needed to revert a delete."""

    label: str
    snapshot: ProjectSnapshot
    graph: DependencyGraph


class GlyphSession:
    """Editing session over a ProjectState.

    The session assumes serialized callers: a commit save is refused while a
    cascade from a previous save is still running. Closing the session makes
    any running cascade abandon its work without committing.

    Example:
        session = GlyphSession(state)
        session.save(0x41, new_geometry)
        token = session.delete(0x41)
        session.undo(token)
    """

    def __init__(
        self,
        state: ProjectState,
        sink: NotificationSink | None = None,
        scheduler: CascadeScheduler | None = None,
    ) -> None:
        self.state = state
        self.sink: NotificationSink = sink or LoggingNotificationSink()
        self.scheduler = scheduler or CascadeScheduler(state.settings.cascade)
        self.graph = DependencyGraph.from_characters(
            state.characters.values(), state.characters
        )
        self._alive = True
        self._cascade_in_flight = False
        self._deferred: dict[int, bool] = {}
        self._pua_cursor = PUA_START - 1
        self._sync_pua_cursor()

        cycle = self.graph.find_cycle()
        if cycle is not None:
            logger.warning("Cyclic derivation in project", cycle=self._labels(cycle))

    # --- lifecycle -------------------------------------------------------

    def is_alive(self) -> bool:
        """Check if the session is still open."""
        return self._alive

    def close(self) -> None:
        """End the session; running cascades are abandoned."""
        self._alive = False

    @property
    def is_cascading(self) -> bool:
        """Check if a cascade is currently running."""
        return self._cascade_in_flight

    # --- helpers ---------------------------------------------------------

    def _labels(self, unicodes: Iterable[int]) -> list[str]:
        chars = self.state.chars_by_unicode
        return [chars[u].name if u in chars else f"U+{u:04X}" for u in unicodes]

    def _component_unicodes(self, names: Iterable[str]) -> list[int]:
        result = []
        for name in names:
            char = self.state.characters.get(name)
            if char is not None and char.unicode is not None:
                result.append(char.unicode)
        return result

    def generator(self) -> CompositeGenerator:
        """Composite generator reading the current state."""
        return CompositeGenerator(self.state.layout_context())

    def _warn_missing(self, name: str, missing: list[str]) -> None:
        self.sink.notify(
            f"Cannot build '{name}': missing or undrawn component(s) {', '.join(missing)}",
            "warning",
        )

    def _require_unicode(self, char: Character) -> int:
        if char.unicode is None:
            raise DerivationError(char.name, "character has no code point")
        return char.unicode

    # --- save ------------------------------------------------------------

    def _stage_save(
        self,
        unicode: int,
        glyph: GlyphData,
        metadata: Mapping[str, Any] | None,
        is_draft: bool,
        on_success: Callable[[], None] | None,
    ) -> CascadeTask | None:
        """Store the edit and build the cascade a commit needs, if any."""
        char = self.state.get(unicode)
        if self._cascade_in_flight:
            raise CascadeError("A cascade from a previous save is still running")

        changes = dict(metadata or {})
        unknown = set(changes) - METADATA_FIELDS
        if unknown:
            raise ValueError(f"Unknown metadata fields: {', '.join(sorted(unknown))}")
        if changes.get("glyph_class") is not None:
            changes["glyph_class"] = GlyphClass(changes["glyph_class"])
        changes = {k: v for k, v in changes.items() if getattr(char, k) != v}
        has_path_changes = self.state.glyph_data.get(unicode, GlyphData()) != glyph

        if has_path_changes:
            self.state.apply(SetGlyph(unicode, glyph))
        if changes:
            self.state.apply(UpdateCharacterMetadata(char.name, changes))

        pending_metadata = self._deferred.get(unicode)
        if is_draft:
            if has_path_changes or changes:
                self._deferred[unicode] = bool(changes) or bool(pending_metadata)
            if on_success:
                on_success()
            return None

        if not has_path_changes and not changes and pending_metadata is None:
            if on_success:
                on_success()
            return None

        self._deferred.pop(unicode, None)
        return self.scheduler.create_task(
            unicode,
            glyph,
            self.state.layout_context(),
            self.graph,
            self.state.chars_by_unicode,
            cascade_logger=CascadeLogger(),
            source_metadata_changed=bool(changes) or bool(pending_metadata),
        )

    def _commit(
        self,
        result: CascadeResult,
        silent: bool,
        on_success: Callable[[], None] | None,
    ) -> CascadeResult:
        if result.updates:
            self.state.apply(BatchUpdateGlyphs(result.updates))
        for name, missing in result.missing.items():
            self._warn_missing(name, missing)
        if not silent and result.notification_count:
            self.sink.notify(
                f"Updated {result.notification_count} dependent glyph(s)", "success"
            )
        if on_success:
            on_success()
        return result

    def save(
        self,
        unicode: int,
        glyph: GlyphData,
        metadata: Mapping[str, Any] | None = None,
        is_draft: bool = False,
        silent: bool = False,
        on_success: Callable[[], None] | None = None,
    ) -> CascadeResult | None:
        """Save an edit of one glyph.

        Drafts only store the glyph. Commits also propagate the edit to every
        dependent and commit all of their updates together. An edit that
        changes nothing returns immediately, unless an earlier draft of the
        same glyph is still waiting for its cascade.

        Args:
            unicode: Code point of the edited glyph
            glyph: New geometry
            metadata: Changed lsb, rsb, glyph_class or adv_width
            is_draft: Autosave; defer propagation
            silent: Do not notify on success
            on_success: Called after the save (and cascade) completed

        Returns:
            The cascade result for commits that propagated, else None

        Raises:
            CharacterNotFoundError: If the code point is unknown
            CascadeError: If a previous cascade is still running
            ValueError: If metadata names an unknown field
        """
        task = self._stage_save(unicode, glyph, metadata, is_draft, on_success)
        if task is None:
            return None

        self._cascade_in_flight = True
        try:
            result = self.scheduler.run(task, is_alive=self.is_alive)
        except CascadeCancelledError as e:
            logger.info("Cascade discarded", glyph=unicode, processed=e.processed_count)
            return None
        finally:
            self._cascade_in_flight = False
        return self._commit(result, silent, on_success)

    async def asave(
        self,
        unicode: int,
        glyph: GlyphData,
        metadata: Mapping[str, Any] | None = None,
        is_draft: bool = False,
        silent: bool = False,
        on_success: Callable[[], None] | None = None,
    ) -> CascadeResult | None:
        """Save an edit, running the cascade cooperatively on the event loop.

        Same contract as ``save``. The host event loop gets control back after
        every batch of dependents, and other saves are refused until the
        cascade has been committed or discarded.
        """
        task = self._stage_save(unicode, glyph, metadata, is_draft, on_success)
        if task is None:
            return None

        self._cascade_in_flight = True
        try:
            if not silent and self.graph.dependents_of(unicode):
                self.sink.notify("Updating dependent glyphs", "info")
            result = await self.scheduler.run_async(task, is_alive=self.is_alive)
        except CascadeCancelledError as e:
            logger.info("Cascade discarded", glyph=unicode, processed=e.processed_count)
            return None
        finally:
            self._cascade_in_flight = False
        return self._commit(result, silent, on_success)

    def propagate(self, unicode: int, silent: bool = False) -> CascadeResult | None:
        """Propagate a glyph's current geometry to its dependents.

        Returns None if the glyph is not drawn.
        """
        self.state.get(unicode)
        glyph = self.state.glyph_data.get(unicode)
        if not is_glyph_drawn(glyph):
            return None
        self._deferred.setdefault(unicode, False)
        return self.save(unicode, glyph, silent=silent)  # type: ignore[arg-type]

    # --- delete ----------------------------------------------------------

    def delete(self, unicode: int) -> UndoToken:
        """Delete a glyph, baking everything derived from it first.

        Each direct dependent is regenerated from the state just before the
        delete, keeping its stored geometry if that fails. It then loses its
        derivation and becomes a free-standing drawn glyph. Kerning and
        mark-positioning entries involving the glyph are removed.

        Returns:
            Token that reverts the delete with ``undo``

        Raises:
            CharacterNotFoundError: If the code point is unknown
            CascadeError: If a cascade from an earlier save is still running
        """
        char = self.state.get(unicode)
        if self._cascade_in_flight:
            raise CascadeError("A cascade from a previous save is still running")
        token = UndoToken(
            label=f"delete {char.name}",
            snapshot=self.state.snapshot(),
            graph=self.graph.copy(),
        )

        generator = self.generator()
        baked: dict[int, GlyphData] = {}
        for dependent in sorted(self.graph.dependents_of(unicode)):
            dep_char = self.state.chars_by_unicode.get(dependent)
            if dep_char is None:
                continue
            data = generator.generate(dep_char)
            if data is None:
                data = self.state.glyph_data.get(dependent)
            if data is not None:
                baked[dependent] = data
            self.graph.on_link_changed(
                dependent, self._component_unicodes(dep_char.components), []
            )
            self.state.apply(
                ReplaceCharacter(
                    dep_char.with_derivation(
                        None,
                        None,
                        composite_transform=None,
                        source_link=None,
                        source_link_type=None,
                        gpos=None,
                    )
                )
            )
            logger.debug("Dependent baked", glyph=dep_char.name, source=char.name)

        if baked:
            self.state.apply(BatchUpdateGlyphs(baked))
        self.state.apply(PurgePairs(unicode))
        self.state.apply(DeleteGlyph(unicode))
        self.state.apply(DeleteCharacter(char.name))
        self.graph.remove_node(unicode)
        self._deferred.pop(unicode, None)

        logger.info("Glyph deleted", glyph=char.name, baked=len(baked))
        self.sink.notify(f"Deleted '{char.name}'", "success")
        return token

    def undo(self, token: UndoToken) -> None:
        """Revert a change captured in an undo token."""
        self.state.restore(token.snapshot)
        self.graph = token.graph.copy()
        logger.info("Undone", action=token.label)

    # --- derivation changes ----------------------------------------------

    def _check_cycle(self, char: Character, components: Iterable[str]) -> None:
        if not self.state.settings.cascade.reject_cycles:
            return
        unicode = self._require_unicode(char)
        cycle = self.graph.would_create_cycle(unicode, self._component_unicodes(components))
        if cycle is not None:
            raise CyclicDerivationError(char.name, self._labels(cycle))

    def _rederive(self, old: Character, new: Character) -> GlyphData | None:
        """Store a changed derivation, regenerate and propagate the result."""
        unicode = self._require_unicode(new)
        self.graph.on_link_changed(
            unicode,
            self._component_unicodes(old.components),
            self._component_unicodes(new.components),
        )
        self.state.apply(ReplaceCharacter(new))

        if not new.is_derived():
            return self.state.glyph_data.get(unicode)

        generator = self.generator()
        data = generator.generate(new)
        if data is None:
            self._warn_missing(new.name, generator.missing_components(new))
            self.state.apply(DeleteGlyph(unicode))
            return None
        if data != self.state.glyph_data.get(unicode):
            self.save(unicode, data, silent=True)
        return data

    def update_dependencies(
        self,
        unicode: int,
        kind: DerivationKind | None,
        components: Iterable[str] | None,
        transforms: Any = None,
    ) -> Character:
        """Change the derivation kind and components of a glyph.

        Placement is evaluated in component order, so a reordered list always
        regenerates the glyph from scratch.

        Args:
            unicode: Code point of the glyph
            kind: New derivation kind, or None to make it free-standing
            components: Component names
            transforms: Composite transforms in any accepted syntax

        Returns:
            The updated character

        Raises:
            CharacterNotFoundError: If the glyph or a component is unknown
            CyclicDerivationError: If the change would make the glyph depend
                on itself
        """
        char = self.state.get(unicode)
        names = tuple(components or ())
        for name in names:
            self.state.get(name)
        if kind is not None and not names:
            raise DerivationError(char.name, f"'{kind.value}' needs at least one component")
        self._check_cycle(char, names)

        try:
            normalized = normalize_transforms(transforms, len(names))
        except ValueError as e:
            raise DerivationError(char.name, str(e)) from e

        new_char = char.with_derivation(
            kind, names if kind is not None else None, composite_transform=normalized
        )
        self._rederive(char, new_char)
        logger.info(
            "Dependencies updated",
            glyph=char.name,
            kind=kind.value if kind else None,
            components=list(names),
        )
        return new_char

    def unlock(self, unicode: int) -> Character:
        """Freeze a linked, positioned or kerned glyph into a composite.

        The glyph keeps its exact current geometry: transforms are fitted so
        that the composite would regenerate to the same paths. The previous
        derivation is remembered for ``relink``.

        Raises:
            CharacterNotFoundError: If the code point is unknown
            DerivationError: If the glyph is not live-derived
        """
        char = self.state.get(unicode)
        kind = char.derivation_kind
        if kind not in (DerivationKind.LINK, DerivationKind.POSITION, DerivationKind.KERN):
            raise DerivationError(char.name, "only linked, positioned or kerned glyphs unlock")

        generator = self.generator()
        current = self.state.glyph_data.get(unicode)
        if not is_glyph_drawn(current):
            current = generator.generate_or_raise(char)

        components = char.components
        unlocked = char.with_derivation(
            DerivationKind.COMPOSITE,
            components,
            source_link=components,
            source_link_type=kind,
        )
        fitted = generator.fit_transforms(unlocked, current)  # type: ignore[arg-type]
        if fitted is not None:
            unlocked = replace(unlocked, composite_transform=fitted)

        self.state.apply(ReplaceCharacter(unlocked))
        self.state.apply(SetGlyph(unicode, current))  # type: ignore[arg-type]
        logger.info("Glyph unlocked", glyph=char.name, kind=kind.value)
        return unlocked

    def relink(self, unicode: int) -> Character:
        """Restore the live derivation of an unlocked glyph and regenerate it.

        Raises:
            CharacterNotFoundError: If the code point is unknown
            DerivationError: If the glyph has no remembered derivation
            CyclicDerivationError: If relinking would create a cycle
        """
        char = self.state.get(unicode)
        if not char.source_link:
            raise DerivationError(char.name, "glyph was never unlocked")
        kind = char.source_link_type or DerivationKind.LINK
        components = char.source_link
        self._check_cycle(char, components)

        relinked = char.with_derivation(
            kind, components, source_link=None, source_link_type=None
        )
        current = self.state.glyph_data.get(unicode)
        if is_glyph_drawn(current):
            fitted = self.generator().fit_transforms(relinked, current)  # type: ignore[arg-type]
            if fitted is not None:
                relinked = replace(relinked, composite_transform=fitted)

        self._rederive(char, relinked)
        logger.info("Glyph relinked", glyph=char.name, kind=kind.value)
        return relinked

    # --- creation, import, bulk edits --------------------------------------

    def _sync_pua_cursor(self) -> None:
        highest = max(
            (u for u in self.state.chars_by_unicode if is_pua(u)), default=PUA_START - 1
        )
        if highest > self._pua_cursor:
            self._pua_cursor = highest

    def next_pua(self) -> int:
        """Allocate the next private use code point.

        The cursor only moves forward within a session. When the BMP area is
        exhausted it continues in plane 15.
        """
        self._sync_pua_cursor()
        candidate = self._pua_cursor + 1
        if PUA_END < candidate < PUA_A_START:
            candidate = PUA_A_START
        self._pua_cursor = candidate
        return candidate

    def add_character(
        self,
        name: str,
        unicode: int | None = None,
        set_name: str | None = None,
    ) -> Character:
        """Add a custom character.

        Without an explicit code point, standard names (space, nbsp, zwnj,
        zwj) and single-character names map to their own code point when it
        is free; everything else gets the next private use code point.

        Raises:
            DuplicateCharacterError: If the name or code point is taken
        """
        is_pua_assigned = False
        if unicode is None:
            name = name.strip()
            standard = STANDARD_NAMES.get(name.lower())
            if standard is None and len(name) == 1:
                standard = ord(name)
            if standard is not None and standard not in self.state.chars_by_unicode:
                unicode = standard
        if unicode is None:
            unicode = self.next_pua()
            is_pua_assigned = True

        category = unicode_category(unicode)
        char = Character(
            name=name,
            unicode=unicode,
            glyph_class=GlyphClass.MARK if category in MARK_CATEGORIES else GlyphClass.BASE,
            adv_width=0 if category == "Mn" else None,
            is_custom=True,
            is_pua_assigned=is_pua_assigned,
        )
        self.state.apply(AddCharacter(char, set_name))
        logger.info("Character added", glyph=name, unicode=f"U+{unicode:04X}")
        self.sink.notify(f"Added '{name}'", "success")
        return char

    def import_glyphs(self, glyphs: Mapping[int, GlyphData]) -> int:
        """Write geometry for many glyphs at once, without propagation.

        Returns:
            Number of glyphs written
        """
        if not glyphs:
            return 0
        for unicode in glyphs:
            self.state.get(unicode)
        self.state.apply(BatchUpdateGlyphs(dict(glyphs)))
        for unicode in glyphs:
            self._deferred.setdefault(unicode, False)
        self.sink.notify(f"Imported {len(glyphs)} glyph(s)", "success")
        return len(glyphs)

    def bulk_transform(
        self,
        unicodes: Iterable[int],
        scale_x: float = 1.0,
        scale_y: float = 1.0,
        rotation: float = 0.0,
        flip_h: bool = False,
        flip_v: bool = False,
        propagate: bool = True,
    ) -> int:
        """Transform several glyphs, each about its own bounding-box center.

        Args:
            unicodes: Glyphs to transform (undrawn ones are skipped)
            scale_x: Horizontal scale factor (must be positive)
            scale_y: Vertical scale factor (must be positive)
            rotation: Rotation in degrees
            flip_h: Mirror horizontally
            flip_v: Mirror vertically
            propagate: Run a cascade for each changed glyph

        Returns:
            Number of glyphs changed

        Raises:
            ValueError: If a scale factor is not positive
        """
        if scale_x <= 0 or scale_y <= 0:
            raise ValueError("Scale factors must be positive")

        stroke = self.state.settings.render.stroke_thickness
        changed = 0
        for unicode in unicodes:
            data = self.state.glyph_data.get(unicode)
            if not is_glyph_drawn(data):
                continue
            paths = transform_paths(
                data.paths,  # type: ignore[union-attr]
                stroke,
                scale_x=scale_x,
                scale_y=scale_y,
                rotation=rotation,
                flip_h=flip_h,
                flip_v=flip_v,
            )
            new_data = GlyphData(paths=paths)
            if new_data == data:
                continue
            self.save(unicode, new_data, is_draft=not propagate, silent=True)
            changed += 1

        if changed:
            self.sink.notify(f"Transformed {changed} glyph(s)", "success")
        return changed

    def regenerate(self, unicode: int, propagate: bool = True) -> GlyphData:
        """Rebuild a derived glyph from its components.

        Raises:
            CharacterNotFoundError: If the code point is unknown
            MissingComponentError: If a component is missing or undrawn
        """
        char = self.state.get(unicode)
        data = self.generator().generate_or_raise(char)
        self.save(unicode, data, is_draft=not propagate, silent=True)
        return data

