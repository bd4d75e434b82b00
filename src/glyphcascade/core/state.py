"""Owned project state and the commands that change it.

Every mutation of a project goes through a command object applied with
``ProjectState.apply``. Engines such as the cascade never write to the state
themselves; they describe what should change and the session turns that into
commands.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from glyphcascade.config import GlyphCascadeSettings
from glyphcascade.core.composite import LayoutContext
from glyphcascade.domain import Character, GlyphData, Point, RuleSet
from glyphcascade.exceptions import CharacterNotFoundError, DuplicateCharacterError

METADATA_FIELDS = frozenset({"lsb", "rsb", "glyph_class", "adv_width"})


@dataclass(frozen=True)
class SetGlyph:
    """Replace the geometry of one glyph."""

    unicode: int
    data: GlyphData


@dataclass(frozen=True)
class BatchUpdateGlyphs:
    """Replace the geometry of several glyphs at once."""

    updates: Mapping[int, GlyphData]


@dataclass(frozen=True)
class DeleteGlyph:
    """Remove the geometry of one glyph."""

    unicode: int


@dataclass(frozen=True)
class UpdateCharacterMetadata:
    """Change side bearings, advance width or glyph class."""

    name: str
    changes: Mapping[str, Any]


@dataclass(frozen=True)
class ReplaceCharacter:
    """Replace a character definition by name."""

    character: Character


@dataclass(frozen=True)
class AddCharacter:
    """Add a character, optionally listing it in a character set."""

    character: Character
    set_name: str | None = None


@dataclass(frozen=True)
class DeleteCharacter:
    """Remove a character definition and its character-set entries."""

    name: str


@dataclass(frozen=True)
class SetKerning:
    """Set or clear (value None) the kerning of a pair."""

    left: int
    right: int
    value: float | None


@dataclass(frozen=True)
class SetMarkPositioning:
    """Set or clear (offset None) the manual offset of a base/mark pair."""

    base: int
    mark: int
    offset: Point | None


@dataclass(frozen=True)
class PurgePairs:
    """Remove every kerning and mark-positioning entry involving a code point."""

    unicode: int


Command = (
    SetGlyph
    | BatchUpdateGlyphs
    | DeleteGlyph
    | UpdateCharacterMetadata
    | ReplaceCharacter
    | AddCharacter
    | DeleteCharacter
    | SetKerning
    | SetMarkPositioning
    | PurgePairs
)


@dataclass
class ProjectSnapshot:
    """Copy of the mutable parts of a project, used to undo a change."""

    characters: dict[str, Character]
    glyph_data: dict[int, GlyphData]
    kerning: dict[tuple[int, int], float]
    mark_positioning: dict[tuple[int, int], Point]
    character_sets: dict[str, list[str]]


@dataclass
class ProjectState:
    """The authoritative state of an open project.

    Attributes:
        characters: Characters by name, in definition order
        glyph_data: Geometry by code point
        kerning: (left, right) code points -> kerning value
        mark_positioning: (base, mark) code points -> manual mark offset
        rules: Attachment and positioning rules (read-only)
        settings: Application settings
        character_sets: Character set name -> member names
    """

    characters: dict[str, Character] = field(default_factory=dict)
    glyph_data: dict[int, GlyphData] = field(default_factory=dict)
    kerning: dict[tuple[int, int], float] = field(default_factory=dict)
    mark_positioning: dict[tuple[int, int], Point] = field(default_factory=dict)
    rules: RuleSet = field(default_factory=RuleSet)
    settings: GlyphCascadeSettings = field(default_factory=GlyphCascadeSettings)
    character_sets: dict[str, list[str]] = field(default_factory=dict)
    _by_unicode: dict[int, Character] | None = field(default=None, repr=False, compare=False)

    @property
    def chars_by_name(self) -> Mapping[str, Character]:
        return self.characters

    @property
    def chars_by_unicode(self) -> Mapping[int, Character]:
        if self._by_unicode is None:
            self._by_unicode = {
                c.unicode: c for c in self.characters.values() if c.unicode is not None
            }
        return self._by_unicode

    def get(self, key: str | int) -> Character:
        """Look up a character by name or code point.

        Raises:
            CharacterNotFoundError: If no such character exists
        """
        char = self.chars_by_unicode.get(key) if isinstance(key, int) else self.characters.get(key)
        if char is None:
            raise CharacterNotFoundError(key)
        return char

    def layout_context(self) -> LayoutContext:
        """Layout inputs reading the current state."""
        return LayoutContext(
            chars_by_name=self.characters,
            glyph_data=self.glyph_data,
            render=self.settings.render,
            metrics=self.settings.metrics,
            rules=self.rules,
            character_sets=self.character_sets,
            mark_positioning=self.mark_positioning,
            kerning=self.kerning,
        )

    def apply(self, command: Command) -> None:
        """Apply a command to the state.

        Raises:
            CharacterNotFoundError: If a command names an unknown character
            DuplicateCharacterError: If an added character already exists
            ValueError: If metadata changes name an unknown field
        """
        if isinstance(command, SetGlyph):
            self.glyph_data[command.unicode] = command.data
        elif isinstance(command, BatchUpdateGlyphs):
            self.glyph_data.update(command.updates)
        elif isinstance(command, DeleteGlyph):
            self.glyph_data.pop(command.unicode, None)
        elif isinstance(command, UpdateCharacterMetadata):
            unknown = set(command.changes) - METADATA_FIELDS
            if unknown:
                raise ValueError(f"Unknown metadata fields: {', '.join(sorted(unknown))}")
            char = self.get(command.name)
            self._put(replace(char, **command.changes))
        elif isinstance(command, ReplaceCharacter):
            self.get(command.character.name)
            self._put(command.character)
        elif isinstance(command, AddCharacter):
            self._add(command.character, command.set_name)
        elif isinstance(command, DeleteCharacter):
            self.get(command.name)
            del self.characters[command.name]
            for members in self.character_sets.values():
                if command.name in members:
                    members.remove(command.name)
            self._by_unicode = None
        elif isinstance(command, SetKerning):
            key = (command.left, command.right)
            if command.value is None:
                self.kerning.pop(key, None)
            else:
                self.kerning[key] = command.value
        elif isinstance(command, SetMarkPositioning):
            key = (command.base, command.mark)
            if command.offset is None:
                self.mark_positioning.pop(key, None)
            else:
                self.mark_positioning[key] = command.offset
        elif isinstance(command, PurgePairs):
            u = command.unicode
            self.kerning = {k: v for k, v in self.kerning.items() if u not in k}
            self.mark_positioning = {
                k: v for k, v in self.mark_positioning.items() if u not in k
            }
        else:
            raise TypeError(f"Unknown command: {type(command).__name__}")

    def _put(self, character: Character) -> None:
        self.characters[character.name] = character
        self._by_unicode = None

    def _add(self, character: Character, set_name: str | None) -> None:
        if character.name in self.characters:
            raise DuplicateCharacterError(character.name)
        if character.unicode is not None and character.unicode in self.chars_by_unicode:
            raise DuplicateCharacterError(character.unicode)
        self._put(character)
        if set_name is not None:
            self.character_sets.setdefault(set_name, []).append(character.name)

    def snapshot(self) -> ProjectSnapshot:
        """Capture the mutable parts of the state.

        Characters and glyph data are immutable in practice, so only the
        containers are copied.
        """
        return ProjectSnapshot(
            characters=dict(self.characters),
            glyph_data=dict(self.glyph_data),
            kerning=dict(self.kerning),
            mark_positioning=dict(self.mark_positioning),
            character_sets={k: list(v) for k, v in self.character_sets.items()},
        )

    def restore(self, snapshot: ProjectSnapshot) -> None:
        """Restore a previously captured snapshot."""
        self.characters = dict(snapshot.characters)
        self.glyph_data = dict(snapshot.glyph_data)
        self.kerning = dict(snapshot.kerning)
        self.mark_positioning = dict(snapshot.mark_positioning)
        self.character_sets = {k: list(v) for k, v in snapshot.character_sets.items()}
        self._by_unicode = None
