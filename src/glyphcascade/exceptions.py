"""Exception hierarchy for Glyphcascade."""


class GlyphCascadeError(Exception):
    """Base exception for all Glyphcascade errors."""

    pass


class ProjectError(GlyphCascadeError):
    """Errors related to project loading or saving."""

    pass


class ProjectLoadError(ProjectError):
    """Error loading a project file."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load project '{path}': {reason}")


class ProjectSaveError(ProjectError):
    """Error saving a project file."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to save project '{path}': {reason}")


class CharacterError(GlyphCascadeError):
    """Errors related to character definitions."""

    pass


class CharacterNotFoundError(CharacterError):
    """Requested character not found in the project."""

    def __init__(self, key: str | int) -> None:
        self.key = key
        label = f"U+{key:04X}" if isinstance(key, int) else key
        super().__init__(f"Character '{label}' not found in project")


class DerivationError(CharacterError):
    """A character's derivation fields are inconsistent."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid derivation for '{name}': {reason}")


class CyclicDerivationError(CharacterError):
    """A derivation would make a glyph depend on itself."""

    def __init__(self, name: str, cycle: list[str]) -> None:
        self.name = name
        self.cycle = cycle
        super().__init__(
            f"Derivation for '{name}' would create a cycle: {' -> '.join(cycle)}"
        )


class MissingComponentError(CharacterError):
    """One or more components of a derived glyph are missing or undrawn."""

    def __init__(self, glyph_name: str, missing: list[str]) -> None:
        self.glyph_name = glyph_name
        self.missing = missing
        super().__init__(
            f"Cannot build '{glyph_name}': missing component(s) {', '.join(missing)}"
        )


class CascadeError(GlyphCascadeError):
    """Errors related to dependent propagation."""

    pass


class CascadeCancelledError(CascadeError):
    """Propagation was abandoned because the session ended."""

    def __init__(self, processed_count: int, pending_count: int) -> None:
        self.processed_count = processed_count
        self.pending_count = pending_count
        super().__init__(
            f"Cascade cancelled: {processed_count} processed, {pending_count} pending"
        )


class DuplicateCharacterError(CharacterError):
    """A character with the same name or code point already exists."""

    def __init__(self, key: str | int) -> None:
        self.key = key
        label = f"U+{key:04X}" if isinstance(key, int) else key
        super().__init__(f"Character '{label}' already exists in project")
