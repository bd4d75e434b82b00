"""Project snapshot reader and writer.

Projects are stored as a single JSON document:

- ``settings``: GlyphCascadeSettings fields
- ``characterSets``: ``[{"nameKey": ..., "characters": [character, ...]}]``
- ``characters``: characters outside any set (optional)
- ``glyphs``: ``[[unicode, {"paths": [...]}], ...]``
- ``kerning``: ``[[left, right, value], ...]``
- ``markPositioning``: ``[[base, mark, {"x": ..., "y": ...}], ...]``
- rule tables: ``markAttachmentRules``, ``positioningRules``,
  ``baseAttachmentClasses``, ``markAttachmentClasses``, ``groups``
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from glyphcascade.config import GlyphCascadeSettings
from glyphcascade.core.state import ProjectState
from glyphcascade.domain import Character, GlyphData, Point, RuleSet
from glyphcascade.exceptions import GlyphCascadeError, ProjectLoadError, ProjectSaveError


def project_from_dict(data: dict[str, Any]) -> ProjectState:
    """Build project state from a decoded project document.

    Raises:
        KeyError, TypeError, ValueError: If the document is malformed
        GlyphCascadeError: If a character definition is invalid
    """
    settings = GlyphCascadeSettings.model_validate(data.get("settings") or {})

    characters: dict[str, Character] = {}
    character_sets: dict[str, list[str]] = {}
    for char_set in data.get("characterSets") or []:
        members = []
        for raw in char_set.get("characters", []):
            char = Character.from_dict(raw)
            characters[char.name] = char
            members.append(char.name)
        character_sets[char_set["nameKey"]] = members
    for raw in data.get("characters") or []:
        char = Character.from_dict(raw)
        characters[char.name] = char

    return ProjectState(
        characters=characters,
        glyph_data={int(u): GlyphData.from_dict(g) for u, g in data.get("glyphs") or []},
        kerning={(int(l), int(r)): float(v) for l, r, v in data.get("kerning") or []},
        mark_positioning={
            (int(b), int(m)): Point.from_dict(p) for b, m, p in data.get("markPositioning") or []
        },
        rules=RuleSet.from_dict(data),
        settings=settings,
        character_sets=character_sets,
    )


def project_to_dict(state: ProjectState) -> dict[str, Any]:
    """Encode project state as a project document."""
    listed: set[str] = set()
    sets = []
    for name_key, members in state.character_sets.items():
        chars = [state.characters[n].to_dict() for n in members if n in state.characters]
        listed.update(members)
        sets.append({"nameKey": name_key, "characters": chars})

    data: dict[str, Any] = {
        "settings": state.settings.model_dump(mode="json"),
        "characterSets": sets,
        "characters": [c.to_dict() for n, c in state.characters.items() if n not in listed],
        "glyphs": [[u, g.to_dict()] for u, g in sorted(state.glyph_data.items())],
        "kerning": [[l, r, v] for (l, r), v in sorted(state.kerning.items())],
        "markPositioning": [
            [b, m, p.to_dict()] for (b, m), p in sorted(state.mark_positioning.items())
        ],
    }
    data.update(state.rules.to_dict())
    return data


class ProjectReader:
    """Loads a project snapshot.

    Example:
        state = ProjectReader(Path("project.json")).load()
    """

    def __init__(self, project_path: Path) -> None:
        self._project_path = project_path

    def load(self) -> ProjectState:
        """Load and decode the project.

        Raises:
            ProjectLoadError: If the file is missing, not JSON, or malformed
        """
        path = self._project_path
        if not path.exists():
            raise ProjectLoadError(str(path), "file not found")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ProjectLoadError(str(path), str(e)) from e
        if not isinstance(data, dict):
            raise ProjectLoadError(str(path), "top level must be an object")

        try:
            return project_from_dict(data)
        except ValidationError as e:
            raise ProjectLoadError(str(path), f"invalid settings: {e}") from e
        except (KeyError, TypeError, ValueError, GlyphCascadeError) as e:
            raise ProjectLoadError(str(path), str(e)) from e


class ProjectWriter:
    """Saves a project snapshot."""

    def __init__(self, output_path: Path) -> None:
        self._output_path = output_path

    @staticmethod
    def get_updated_path(input_path: Path) -> Path:
        """Generate the default output path for a modified project.

        Args:
            input_path: Original project path

        Returns:
            Path with "-updated" suffix before the extension

        Examples:
            >>> ProjectWriter.get_updated_path(Path("font.json"))
            PosixPath('font-updated.json')
        """
        return input_path.parent / f"{input_path.stem}-updated{input_path.suffix}"

    def save(self, state: ProjectState) -> None:
        """Encode and write the project.

        Raises:
            ProjectSaveError: If the file cannot be written
        """
        try:
            self._output_path.write_text(
                json.dumps(project_to_dict(state), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            raise ProjectSaveError(str(self._output_path), str(e)) from e
