"""Automatic placement of components against previously placed geometry.

Placement answers one question: given the bounding box of what has already
been laid out and the bounding box of the next component, how far must the
component move? Marks are attached with anchor rules, other components are
set side by side using their bearings.
"""

from collections.abc import Iterable, Mapping, Sequence

import structlog

from glyphcascade.config import FontMetrics
from glyphcascade.domain import (
    DEFAULT_ATTACHMENT,
    AttachmentClass,
    AttachmentPoint,
    AttachmentRule,
    BoundingBox,
    Character,
    GlyphClass,
    Movement,
    Point,
    PositioningRule,
    RuleSet,
)

logger = structlog.get_logger(__name__)

GROUP_PREFIXES = ("$", "@")


def is_group_reference(item: str) -> bool:
    """Check if a list item names a group (``$name``) or class (``@name``)."""
    return item.startswith(GROUP_PREFIXES)


def _group_members(
    name: str,
    groups: Mapping[str, Sequence[str]],
    character_sets: Mapping[str, Sequence[str]] | None,
) -> Sequence[str] | None:
    if name in groups:
        return groups[name]
    if character_sets and name in character_sets:
        return character_sets[name]
    return None


def expand_members(
    items: Iterable[str] | None,
    groups: Mapping[str, Sequence[str]],
    character_sets: Mapping[str, Sequence[str]] | None = None,
) -> list[str]:
    """Expand names and group references into a flat list of names.

    Groups may contain other groups. Every group is expanded at most once so
    self-referencing groups terminate.

    Args:
        items: Names and ``$group``/``@class`` references
        groups: Group definitions
        character_sets: Character set listings, consulted when a group name
            is not defined in ``groups``

    Returns:
        Unique names in first-seen order
    """
    result: dict[str, None] = {}
    visited: set[str] = set()

    def process(item: str) -> None:
        item = item.strip()
        if not item:
            return
        if not is_group_reference(item):
            result[item] = None
            return
        name = item[1:]
        if name in visited:
            return
        visited.add(name)
        for member in _group_members(name, groups, character_sets) or ():
            process(member)

    for item in items or ():
        process(item)
    return list(result)


def is_char_in_list(
    name: str,
    items: Sequence[str],
    groups: Mapping[str, Sequence[str]],
    character_sets: Mapping[str, Sequence[str]] | None = None,
) -> bool:
    """Check if a character name is in a list, following group references."""
    if name in items:
        return True

    visited: set[str] = set()

    def check(current: Sequence[str]) -> bool:
        for item in current:
            if item == name:
                return True
            if is_group_reference(item):
                group = item[1:]
                if group in visited:
                    continue
                visited.add(group)
                members = _group_members(group, groups, character_sets)
                if members and check(members):
                    return True
        return False

    return check(items)


def attachment_point_coords(bbox: BoundingBox, point: AttachmentPoint) -> Point:
    """Get the coordinates of a named anchor on a bounding box.

    Canvas coordinates: the top edge is the minimum y.
    """
    x, y, w, h = bbox.x, bbox.y, bbox.width, bbox.height
    coords = {
        AttachmentPoint.TOP_LEFT: (x, y),
        AttachmentPoint.TOP_CENTER: (x + w / 2, y),
        AttachmentPoint.TOP_RIGHT: (x + w, y),
        AttachmentPoint.MID_LEFT: (x, y + h / 2),
        AttachmentPoint.MID_RIGHT: (x + w, y + h / 2),
        AttachmentPoint.BOTTOM_LEFT: (x, y + h),
        AttachmentPoint.BOTTOM_CENTER: (x + w / 2, y + h),
        AttachmentPoint.BOTTOM_RIGHT: (x + w, y + h),
    }
    return Point(*coords[point])


def _lookup_rule(
    base_name: str,
    mark_name: str,
    rules: RuleSet,
    character_sets: Mapping[str, Sequence[str]] | None,
) -> AttachmentRule | None:
    table = rules.mark_attachment
    rule = table.get(base_name, {}).get(mark_name)
    if rule is not None:
        return rule

    for base_key, marks in table.items():
        if not is_group_reference(base_key):
            continue
        if base_name not in expand_members([base_key], rules.groups, character_sets):
            continue
        if mark_name in marks:
            return marks[mark_name]
        for mark_key, candidate in marks.items():
            if is_group_reference(mark_key) and mark_name in expand_members(
                [mark_key], rules.groups, character_sets
            ):
                return candidate
    return None


def _class_leader(
    name: str,
    counterpart: str,
    classes: Sequence[AttachmentClass],
    groups: Mapping[str, Sequence[str]],
    character_sets: Mapping[str, Sequence[str]] | None,
) -> str | None:
    for cls in classes:
        members = expand_members(cls.members, groups, character_sets)
        if len(members) < 2 or name not in members or members[0] == name:
            continue
        if cls.exceptions and is_char_in_list(name, cls.exceptions, groups, character_sets):
            continue
        if cls.applies and not is_char_in_list(
            counterpart, cls.applies, groups, character_sets
        ):
            continue
        return members[0]
    return None


def resolve_attachment_rule(
    base_name: str,
    mark_name: str,
    rules: RuleSet,
    character_sets: Mapping[str, Sequence[str]] | None = None,
) -> AttachmentRule | None:
    """Find the attachment rule for a base/mark pair.

    Resolution order:
    1. Exact ``rules[base][mark]``
    2. ``$group``/``@class`` base keys containing the base, then within them
       the exact mark or a mark group containing it
    3. The leader of a base attachment class the base belongs to, then the
       leader of a mark attachment class the mark belongs to

    Args:
        base_name: Name of the base character
        mark_name: Name of the mark character
        rules: Project rule tables
        character_sets: Character set listings for group expansion

    Returns:
        The rule, or None if no rule applies
    """
    rule = _lookup_rule(base_name, mark_name, rules, character_sets)
    if rule is not None:
        return rule

    base_leader = _class_leader(
        base_name, mark_name, rules.base_classes, rules.groups, character_sets
    )
    if base_leader is not None:
        rule = _lookup_rule(base_leader, mark_name, rules, character_sets)
        if rule is not None:
            return rule

    mark_leader = _class_leader(
        mark_name, base_name, rules.mark_classes, rules.groups, character_sets
    )
    if mark_leader is not None:
        rule = _lookup_rule(base_leader or base_name, mark_leader, rules, character_sets)
    return rule


def find_positioning_rule(
    base_name: str,
    mark_name: str,
    rules: RuleSet,
    character_sets: Mapping[str, Sequence[str]] | None = None,
) -> PositioningRule | None:
    """Find the first positioning rule block covering a base/mark pair."""
    for rule in rules.positioning:
        if is_char_in_list(
            base_name, rule.base, rules.groups, character_sets
        ) and is_char_in_list(mark_name, rule.mark, rules.groups, character_sets):
            return rule
    return None


def constrain_movement(offset: Point, movement: Movement | None) -> Point:
    """Restrict an offset to a single axis."""
    if movement is Movement.HORIZONTAL:
        return Point(offset.x, 0.0)
    if movement is Movement.VERTICAL:
        return Point(0.0, offset.y)
    return offset


def mark_offset(
    base_bbox: BoundingBox,
    mark_bbox: BoundingBox,
    rule: AttachmentRule | None,
) -> Point:
    """Offset that brings the mark's anchor onto the base's anchor.

    Args:
        base_bbox: Box of the geometry placed so far
        mark_bbox: Box of the mark at its natural position
        rule: Attachment rule, or None for topCenter over bottomCenter

    Returns:
        Translation for the mark
    """
    rule = rule or DEFAULT_ATTACHMENT
    base_point = attachment_point_coords(base_bbox, rule.base_point)
    base_point = Point(base_point.x + rule.x_offset, base_point.y + rule.y_offset)
    mark_point = attachment_point_coords(mark_bbox, rule.mark_point)
    return Point(base_point.x - mark_point.x, base_point.y - mark_point.y)


def side_by_side_offset(
    prev_char: Character,
    char: Character,
    prev_bbox: BoundingBox,
    bbox: BoundingBox,
    metrics: FontMetrics,
) -> Point:
    """Offset that sets a component after the previous one, bearing to bearing."""
    rsb = prev_char.rsb if prev_char.rsb is not None else metrics.default_rsb
    lsb = char.lsb if char.lsb is not None else metrics.default_lsb
    target_x = prev_bbox.right + rsb + lsb
    return Point(target_x - bbox.x, 0.0)


def default_component_offset(
    prev_char: Character,
    char: Character,
    prev_bbox: BoundingBox,
    bbox: BoundingBox,
    rules: RuleSet,
    metrics: FontMetrics,
    character_sets: Mapping[str, Sequence[str]] | None = None,
    as_mark: bool | None = None,
) -> Point:
    """Compute the automatic offset for a component.

    Marks are attached to the accumulated geometry with the resolved
    attachment rule and any positioning-rule movement constraint. Everything
    else is set side by side.

    Args:
        prev_char: Previously placed component (the base for rule lookup)
        char: Component being placed
        prev_bbox: Box of the accumulated geometry
        bbox: Box of the component at its natural position
        rules: Project rule tables
        metrics: Font metrics for default bearings
        character_sets: Character set listings for group expansion
        as_mark: Force mark placement on or off (defaults to the glyph class)

    Returns:
        Translation for the component
    """
    if as_mark is None:
        as_mark = char.glyph_class is GlyphClass.MARK

    if not as_mark:
        return side_by_side_offset(prev_char, char, prev_bbox, bbox, metrics)

    rule = resolve_attachment_rule(prev_char.name, char.name, rules, character_sets)
    offset = mark_offset(prev_bbox, bbox, rule)

    positioning = find_positioning_rule(prev_char.name, char.name, rules, character_sets)
    if positioning is not None and positioning.movement is not None:
        offset = constrain_movement(offset, positioning.movement)
        logger.debug(
            "Movement constrained",
            base=prev_char.name,
            mark=char.name,
            movement=positioning.movement.value,
        )
    return offset
