"""Core geometric types for glyph artwork.

This module defines the fundamental geometric types used throughout glyphcascade:
- Point: A 2D point (also used for relative handle vectors)
- Segment: An anchor point with incoming/outgoing Bezier handles
- PathType: Enum for the drawing tool that produced a path
- Path: A stroked point sequence or a filled outline of segment groups
- BoundingBox: Axis-aligned box in canvas coordinates
- GlyphData: The ordered paths rendered for exactly one character
"""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

_COMPONENT_GROUP = re.compile(r"^component-(\d+)(?:-.*)?$")


class PathType(str, Enum):
    """Drawing tool that produced a path.

    Every type except OUTLINE is a stroke rendered with the global stroke
    thickness. OUTLINE paths are filled compound shapes made of closed cubic
    segment groups.
    """

    PEN = "pen"
    LINE = "line"
    CIRCLE = "circle"
    DOT = "dot"
    CURVE = "curve"
    ELLIPSE = "ellipse"
    CALLIGRAPHY = "calligraphy"
    OUTLINE = "outline"


@dataclass(frozen=True, slots=True)
class Point:
    """A point in 2D canvas space.

    Immutable and hashable for use in sets/dicts.

    Attributes:
        x: X coordinate
        y: Y coordinate (grows downward)
    """

    x: float
    y: float

    def to_tuple(self) -> tuple[float, float]:
        """Convert to simple (x, y) tuple."""
        return (self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Point":
        """Deserialize from dictionary."""
        return cls(x=data["x"], y=data["y"])


ORIGIN = Point(0.0, 0.0)


@dataclass(frozen=True, slots=True)
class Segment:
    """An anchor point of an outline with its Bezier handles.

    Handles are stored relative to the anchor point.

    Attributes:
        point: Anchor point
        handle_in: Incoming handle, relative to point
        handle_out: Outgoing handle, relative to point
    """

    point: Point
    handle_in: Point = ORIGIN
    handle_out: Point = ORIGIN

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "point": self.point.to_dict(),
            "handleIn": self.handle_in.to_dict(),
            "handleOut": self.handle_out.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Segment":
        """Deserialize from dictionary."""
        return cls(
            point=Point.from_dict(data["point"]),
            handle_in=Point.from_dict(data.get("handleIn", {"x": 0, "y": 0})),
            handle_out=Point.from_dict(data.get("handleOut", {"x": 0, "y": 0})),
        )


@dataclass(frozen=True, slots=True)
class Path:
    """A single drawn path.

    A path is either a sequence of points (strokes) or, for OUTLINE paths, a
    sequence of closed segment groups. Paths that a derived glyph received from
    one of its components carry a group_id of the form ``component-<index>``.

    Attributes:
        id: Identifier, unique within a glyph
        type: Drawing tool that produced the path
        points: Stroke points (empty for outlines)
        segment_groups: Closed cubic sub-paths (outlines only)
        angle: Nib angle in degrees (calligraphy only)
        group_id: Component tag, if any
    """

    id: str
    type: PathType
    points: tuple[Point, ...] = ()
    segment_groups: tuple[tuple[Segment, ...], ...] | None = None
    angle: float | None = None
    group_id: str | None = None

    @property
    def component_index(self) -> int | None:
        """Index of the component this path was taken from, if tagged."""
        if self.group_id is None:
            return None
        match = _COMPONENT_GROUP.match(self.group_id)
        return int(match.group(1)) if match else None

    def has_content(self) -> bool:
        """Check if the path contributes any drawable geometry."""
        return len(self.points) > 0 or bool(self.segment_groups)

    def tagged(self, path_id: str, group_id: str) -> "Path":
        """Return a copy with a new id and component tag."""
        return replace(self, id=path_id, group_id=group_id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "points": [p.to_dict() for p in self.points],
        }
        if self.segment_groups is not None:
            data["segmentGroups"] = [
                [s.to_dict() for s in group] for group in self.segment_groups
            ]
        if self.angle is not None:
            data["angle"] = self.angle
        if self.group_id is not None:
            data["groupId"] = self.group_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Path":
        """Deserialize from dictionary."""
        groups = data.get("segmentGroups")
        return cls(
            id=str(data["id"]),
            type=PathType(data.get("type", PathType.PEN.value)),
            points=tuple(Point.from_dict(p) for p in data.get("points", [])),
            segment_groups=(
                tuple(tuple(Segment.from_dict(s) for s in group) for group in groups)
                if groups is not None
                else None
            ),
            angle=data.get("angle"),
            group_id=data.get("groupId"),
        )


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned bounding box in canvas coordinates.

    Attributes:
        x: Left edge
        y: Top edge (minimum y)
        width: Horizontal extent
        height: Vertical extent
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def is_close(self, other: "BoundingBox", tolerance: float = 1e-6) -> bool:
        """Check if two boxes match within tolerance."""
        return (
            abs(self.x - other.x) <= tolerance
            and abs(self.y - other.y) <= tolerance
            and abs(self.width - other.width) <= tolerance
            and abs(self.height - other.height) <= tolerance
        )

    @classmethod
    def from_extents(
        cls, min_x: float, min_y: float, max_x: float, max_y: float
    ) -> "BoundingBox":
        """Build a box from (min_x, min_y, max_x, max_y)."""
        return cls(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


@dataclass
class GlyphData:
    """The rendered geometry of exactly one character.

    GlyphData never owns identity; it is stored by code point. For derived
    characters it is a cache that can always be rebuilt from the components.

    Attributes:
        paths: Ordered paths
    """

    paths: tuple[Path, ...] = ()
    _cached_bbox: tuple[float, BoundingBox | None] | None = field(
        default=None, repr=False, compare=False, init=False
    )

    def __post_init__(self) -> None:
        if not isinstance(self.paths, tuple):
            self.paths = tuple(self.paths)

    def is_drawn(self) -> bool:
        """Check if any path has drawable content.

        Returns:
            True if at least one path has points or segment groups
        """
        return any(p.has_content() for p in self.paths)

    def component_paths(self, index: int) -> list[Path]:
        """Get the paths tagged as coming from a component.

        Args:
            index: Component index

        Returns:
            Paths tagged ``component-<index>`` in their original order
        """
        return [p for p in self.paths if p.component_index == index]

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"paths": [p.to_dict() for p in self.paths]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GlyphData":
        """Deserialize from dictionary."""
        return cls(paths=tuple(Path.from_dict(p) for p in data.get("paths", [])))


def is_glyph_drawn(glyph_data: GlyphData | None) -> bool:
    """Check if a glyph has been drawn.

    Args:
        glyph_data: Glyph data, or None for a glyph with no entry

    Returns:
        True if the glyph has drawable content
    """
    return glyph_data is not None and glyph_data.is_drawn()
