"""Attachment and positioning rule types.

Rules are read-only tables consulted when marks are placed automatically:
- AttachmentPoint: Named anchor on a bounding box
- AttachmentRule: Which base anchor meets which mark anchor, plus an offset
- PositioningRule: Base/mark sets with an optional movement constraint
- AttachmentClass: Characters that share the rules of their first member
- RuleSet: Everything above bundled with the group definitions
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AttachmentPoint(str, Enum):
    """Named anchor on a bounding box (canvas coordinates, top is minimum y)."""

    TOP_LEFT = "topLeft"
    TOP_CENTER = "topCenter"
    TOP_RIGHT = "topRight"
    MID_LEFT = "midLeft"
    MID_RIGHT = "midRight"
    BOTTOM_LEFT = "bottomLeft"
    BOTTOM_CENTER = "bottomCenter"
    BOTTOM_RIGHT = "bottomRight"


class Movement(str, Enum):
    """Axis along which a positioned mark may move."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True, slots=True)
class AttachmentRule:
    """Attach a mark by bringing one of its anchors onto a base anchor.

    Attributes:
        base_point: Anchor on the base bounding box
        mark_point: Anchor on the mark bounding box
        x_offset: Extra horizontal shift of the base anchor
        y_offset: Extra vertical shift of the base anchor
    """

    base_point: AttachmentPoint
    mark_point: AttachmentPoint
    x_offset: float = 0.0
    y_offset: float = 0.0

    @classmethod
    def from_list(cls, data: list[Any]) -> "AttachmentRule":
        """Build a rule from ``[basePoint, markPoint, dx?, dy?]``.

        Offsets may be given as numbers or numeric strings; anything that
        does not parse counts as zero.
        """
        x_offset = y_offset = 0.0
        if len(data) >= 4:
            x_offset = _parse_offset(data[2])
            y_offset = _parse_offset(data[3])
        return cls(
            base_point=AttachmentPoint(data[0]),
            mark_point=AttachmentPoint(data[1]),
            x_offset=x_offset,
            y_offset=y_offset,
        )

    def to_list(self) -> list[Any]:
        """Serialize to ``[basePoint, markPoint, dx, dy]``."""
        data: list[Any] = [self.base_point.value, self.mark_point.value]
        if self.x_offset or self.y_offset:
            data.extend([str(self.x_offset), str(self.y_offset)])
        return data


def _parse_offset(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


DEFAULT_ATTACHMENT = AttachmentRule(
    base_point=AttachmentPoint.TOP_CENTER,
    mark_point=AttachmentPoint.BOTTOM_CENTER,
)


@dataclass(frozen=True)
class PositioningRule:
    """A block of base/mark pairs that are positioned together.

    Attributes:
        base: Base names or group references
        mark: Mark names or group references
        movement: Axis constraint for automatic placement
        gpos: Feature tag when pairs are rendered through GPOS
        gsub: Feature tag when pairs are substituted by ligatures
    """

    base: tuple[str, ...]
    mark: tuple[str, ...]
    movement: Movement | None = None
    gpos: str | None = None
    gsub: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"base": list(self.base), "mark": list(self.mark)}
        if self.movement is not None:
            data["movement"] = self.movement.value
        if self.gpos is not None:
            data["gpos"] = self.gpos
        if self.gsub is not None:
            data["gsub"] = self.gsub
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PositioningRule":
        movement = data.get("movement")
        return cls(
            base=tuple(data.get("base", [])),
            mark=tuple(data.get("mark", [])),
            movement=Movement(movement) if movement else None,
            gpos=data.get("gpos"),
            gsub=data.get("gsub"),
        )


@dataclass(frozen=True)
class AttachmentClass:
    """Characters that reuse the attachment of the class's first member.

    Attributes:
        members: Member names or group references; the first is the leader
        exceptions: Members that keep their own rules
        applies: Counterparts the class applies to (all when empty)
        name: Optional display name
    """

    members: tuple[str, ...]
    exceptions: tuple[str, ...] = ()
    applies: tuple[str, ...] = ()
    name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"members": list(self.members)}
        if self.exceptions:
            data["exceptions"] = list(self.exceptions)
        if self.applies:
            data["applies"] = list(self.applies)
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttachmentClass":
        return cls(
            members=tuple(data.get("members", [])),
            exceptions=tuple(data.get("exceptions", [])),
            applies=tuple(data.get("applies", [])),
            name=data.get("name"),
        )


MarkAttachmentRules = dict[str, dict[str, AttachmentRule]]


@dataclass
class RuleSet:
    """Read-only rule tables for one project.

    Attributes:
        mark_attachment: base key -> mark key -> rule; keys may be ``$group``
            or ``@class`` references
        positioning: Positioning rule blocks
        base_classes: Base attachment classes
        mark_classes: Mark attachment classes
        groups: Group name -> member names or nested group references
    """

    mark_attachment: MarkAttachmentRules = field(default_factory=dict)
    positioning: tuple[PositioningRule, ...] = ()
    base_classes: tuple[AttachmentClass, ...] = ()
    mark_classes: tuple[AttachmentClass, ...] = ()
    groups: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "markAttachmentRules": {
                base: {mark: rule.to_list() for mark, rule in marks.items()}
                for base, marks in self.mark_attachment.items()
            },
            "positioningRules": [r.to_dict() for r in self.positioning],
            "baseAttachmentClasses": [c.to_dict() for c in self.base_classes],
            "markAttachmentClasses": [c.to_dict() for c in self.mark_classes],
            "groups": {k: list(v) for k, v in self.groups.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuleSet":
        raw_rules = data.get("markAttachmentRules") or {}
        return cls(
            mark_attachment={
                base: {mark: AttachmentRule.from_list(rule) for mark, rule in marks.items()}
                for base, marks in raw_rules.items()
            },
            positioning=tuple(
                PositioningRule.from_dict(r) for r in data.get("positioningRules") or []
            ),
            base_classes=tuple(
                AttachmentClass.from_dict(c) for c in data.get("baseAttachmentClasses") or []
            ),
            mark_classes=tuple(
                AttachmentClass.from_dict(c) for c in data.get("markAttachmentClasses") or []
            ),
            groups={k: list(v) for k, v in (data.get("groups") or {}).items()},
        )
