"""Unit tests for component placement."""

import pytest

from glyphcascade.config import FontMetrics
from glyphcascade.core.placement import (
    attachment_point_coords,
    constrain_movement,
    default_component_offset,
    expand_members,
    find_positioning_rule,
    is_char_in_list,
    mark_offset,
    resolve_attachment_rule,
    side_by_side_offset,
)
from glyphcascade.domain import (
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

TOP_RIGHT_RULE = AttachmentRule(AttachmentPoint.TOP_RIGHT, AttachmentPoint.BOTTOM_LEFT)


class TestGroupExpansion:
    """Tests for $group and @class expansion."""

    def test_nested_groups(self):
        """Test that nested groups are flattened in order."""
        groups = {"caps": ["A", "$round"], "round": ["O", "Q"]}
        assert expand_members(["$caps", "x"], groups) == ["A", "O", "Q", "x"]

    def test_self_referencing_groups_terminate(self):
        """Test that group loops are expanded once."""
        groups = {"a": ["x", "$b"], "b": ["y", "$a"]}
        assert expand_members(["$a"], groups) == ["x", "y"]

    def test_character_set_fallback(self):
        """Test that undefined groups fall back to character sets."""
        assert expand_members(["@Marks"], {}, {"Marks": ["acute", "grave"]}) == [
            "acute",
            "grave",
        ]

    def test_duplicates_and_blanks_removed(self):
        assert expand_members(["A", " ", "A", "$g"], {"g": ["A", "B"]}) == ["A", "B"]

    def test_is_char_in_list(self):
        """Test membership through group references."""
        groups = {"caps": ["$round"], "round": ["O"]}
        assert is_char_in_list("O", ["$caps"], groups)
        assert is_char_in_list("A", ["A"], groups)
        assert not is_char_in_list("B", ["$caps"], groups)


class TestAttachmentRules:
    """Tests for attachment rule resolution."""

    def test_anchor_coordinates(self):
        """Test anchor positions in canvas coordinates (top is minimum y)."""
        box = BoundingBox(10, 20, 100, 50)
        assert attachment_point_coords(box, AttachmentPoint.TOP_CENTER) == Point(60, 20)
        assert attachment_point_coords(box, AttachmentPoint.BOTTOM_RIGHT) == Point(110, 70)
        assert attachment_point_coords(box, AttachmentPoint.MID_LEFT) == Point(10, 45)

    def test_exact_rule(self):
        rules = RuleSet(mark_attachment={"A": {"acute": TOP_RIGHT_RULE}})
        assert resolve_attachment_rule("A", "acute", rules) is TOP_RIGHT_RULE

    def test_group_base_and_mark(self):
        """Test group keys on both sides."""
        rules = RuleSet(
            mark_attachment={"$caps": {"$above": TOP_RIGHT_RULE}},
            groups={"caps": ["A", "B"], "above": ["acute"]},
        )
        assert resolve_attachment_rule("B", "acute", rules) is TOP_RIGHT_RULE
        assert resolve_attachment_rule("C", "acute", rules) is None

    def test_base_class_leader(self):
        """Test that class members reuse the leader's rules."""
        rules = RuleSet(
            mark_attachment={"A": {"acute": TOP_RIGHT_RULE}},
            base_classes=(AttachmentClass(members=("A", "Agrave", "Aring")),),
        )
        assert resolve_attachment_rule("Aring", "acute", rules) is TOP_RIGHT_RULE

    def test_base_class_exception(self):
        """Test that class exceptions keep their own (missing) rules."""
        rules = RuleSet(
            mark_attachment={"A": {"acute": TOP_RIGHT_RULE}},
            base_classes=(AttachmentClass(members=("A", "Aring"), exceptions=("Aring",)),),
        )
        assert resolve_attachment_rule("Aring", "acute", rules) is None

    def test_mark_class_applies_filter(self):
        """Test that a mark class only applies to listed bases."""
        rules = RuleSet(
            mark_attachment={"A": {"acute": TOP_RIGHT_RULE}, "B": {"acute": TOP_RIGHT_RULE}},
            mark_classes=(AttachmentClass(members=("acute", "grave"), applies=("A",)),),
        )
        assert resolve_attachment_rule("A", "grave", rules) is TOP_RIGHT_RULE
        assert resolve_attachment_rule("B", "grave", rules) is None

    def test_positioning_rule_lookup(self):
        rule = PositioningRule(base=("$caps",), mark=("acute",), movement=Movement.VERTICAL)
        rules = RuleSet(positioning=(rule,), groups={"caps": ["A"]})
        assert find_positioning_rule("A", "acute", rules) is rule
        assert find_positioning_rule("A", "grave", rules) is None


class TestOffsets:
    """Tests for automatic offsets."""

    def test_default_mark_offset(self):
        """Test topCenter of the base over bottomCenter of the mark."""
        offset = mark_offset(BoundingBox(0, 0, 100, 100), BoundingBox(0, 0, 20, 10), None)
        assert offset == Point(40, -10)

    def test_rule_offsets_shift_base_anchor(self):
        rule = AttachmentRule(AttachmentPoint.TOP_CENTER, AttachmentPoint.BOTTOM_CENTER, 5, -2)
        offset = mark_offset(BoundingBox(0, 0, 100, 100), BoundingBox(0, 0, 20, 10), rule)
        assert offset == Point(45, -12)

    def test_constrain_movement(self):
        assert constrain_movement(Point(3, 4), Movement.HORIZONTAL) == Point(3, 0)
        assert constrain_movement(Point(3, 4), Movement.VERTICAL) == Point(0, 4)
        assert constrain_movement(Point(3, 4), None) == Point(3, 4)

    def test_side_by_side_uses_bearings(self):
        """Test bearings of the characters, then metric defaults."""
        metrics = FontMetrics(default_lsb=7, default_rsb=3)
        prev = Character(name="A", rsb=10)
        char = Character(name="B")
        offset = side_by_side_offset(
            prev, char, BoundingBox(0, 0, 100, 100), BoundingBox(20, 0, 50, 50), metrics
        )
        # 100 + 10 + 7, moved from x=20
        assert offset == Point(97, 0)

    def test_default_offset_for_mark_class(self):
        """Test that the mark class selects anchor placement."""
        prev = Character(name="A")
        mark = Character(name="acute", glyph_class=GlyphClass.MARK)
        rules = RuleSet(
            positioning=(PositioningRule(base=("A",), mark=("acute",), movement=Movement.VERTICAL),)
        )
        offset = default_component_offset(
            prev,
            mark,
            BoundingBox(0, 0, 100, 100),
            BoundingBox(0, 0, 20, 10),
            rules,
            FontMetrics(),
        )
        assert offset == Point(0, -10)

    @pytest.mark.parametrize("as_mark,expected", [(True, Point(40, -10)), (False, Point(100, 0))])
    def test_as_mark_override(self, as_mark, expected):
        """Test forcing mark placement on or off."""
        offset = default_component_offset(
            Character(name="A"),
            Character(name="B"),
            BoundingBox(0, 0, 100, 100),
            BoundingBox(0, 0, 20, 10),
            RuleSet(),
            FontMetrics(default_lsb=0, default_rsb=0),
            as_mark=as_mark,
        )
        assert offset == expected
