"""Unit tests for geometric operations."""

import math

import pytest
from fontTools.misc.transform import Transform

from glyphcascade.core.geometry import (
    apply_transform,
    build_transform,
    glyph_bbox,
    quadratic_spline_pieces,
    transform_paths,
    translate_paths,
    vec_rotate,
)
from glyphcascade.domain import BoundingBox, GlyphData, Path, PathType, Point, Segment


def square_outline(x0: float, y0: float, size: float) -> Path:
    corners = [(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)]
    return Path(
        id="o",
        type=PathType.OUTLINE,
        segment_groups=(tuple(Segment(Point(x, y)) for x, y in corners),),
    )


def assert_box(box: BoundingBox | None, x: float, y: float, w: float, h: float) -> None:
    assert box is not None
    assert box.x == pytest.approx(x)
    assert box.y == pytest.approx(y)
    assert box.width == pytest.approx(w)
    assert box.height == pytest.approx(h)


class TestVectors:
    """Tests for vector helpers."""

    def test_rotate_quarter_turn(self):
        """Test rotating a unit vector by 90 degrees."""
        p = vec_rotate(Point(1, 0), math.pi / 2)
        assert p.x == pytest.approx(0)
        assert p.y == pytest.approx(1)


class TestBoundingBox:
    """Tests for glyph_bbox."""

    def test_line_padded_by_half_stroke(self):
        """Test that stroked paths grow by half the stroke thickness."""
        line = Path(id="a", type=PathType.LINE, points=(Point(0, 0), Point(100, 0)))
        assert glyph_bbox([line], 10) == BoundingBox(-5.0, -5.0, 110.0, 10.0)

    def test_pen_uses_curve_extrema(self):
        """Test that a pen stroke is measured on its curve, not its control points."""
        pen = Path(
            id="p", type=PathType.PEN, points=(Point(0, 0), Point(50, 100), Point(100, 0))
        )
        assert_box(glyph_bbox([pen], 0), 0, 0, 100, 50)

    def test_spline_pieces(self):
        """Test that interior on-curve points are control-point midpoints."""
        points = [Point(0, 0), Point(10, 10), Point(20, 10), Point(30, 0)]
        pieces = quadratic_spline_pieces(points)
        assert len(pieces) == 2
        assert pieces[0][2] == Point(15, 10)
        assert pieces[1] == (Point(15, 10), Point(20, 10), Point(30, 0))

    def test_dot_radius_from_second_point(self):
        """Test dot bounds use the distance to the radius point."""
        dot = Path(id="d", type=PathType.DOT, points=(Point(10, 10), Point(13, 14)))
        assert_box(glyph_bbox([dot], 0), 5, 5, 10, 10)

    def test_dot_defaults_to_half_stroke(self):
        dot = Path(id="d", type=PathType.DOT, points=(Point(10, 10),))
        assert_box(glyph_bbox([dot], 8), 6, 6, 8, 8)

    def test_outline_not_padded(self):
        """Test that filled outlines are measured exactly."""
        assert_box(glyph_bbox([square_outline(10, 20, 30)], 50), 10, 20, 30, 30)

    def test_outline_handles_bulge(self):
        """Test that curved outline segments extend the box."""
        path = Path(
            id="o",
            type=PathType.OUTLINE,
            segment_groups=(
                (
                    Segment(Point(0, 0), handle_in=Point(0, 40), handle_out=Point(0, -40)),
                    Segment(Point(100, 0), handle_in=Point(0, -40), handle_out=Point(0, 40)),
                ),
            ),
        )
        box = glyph_bbox([path], 0)
        assert box is not None
        assert box.y == pytest.approx(-30)
        assert box.bottom == pytest.approx(30)

    def test_empty_paths(self):
        """Test that nothing measurable gives None."""
        assert glyph_bbox([], 10) is None
        assert glyph_bbox([Path(id="a", type=PathType.PEN)], 10) is None

    def test_glyph_data_cache(self):
        """Test that results are cached per stroke thickness."""
        data = GlyphData(paths=(square_outline(0, 0, 10),))
        first = glyph_bbox(data, 5)
        assert data._cached_bbox == (5, first)
        assert glyph_bbox(data, 5) is first


class TestTransforms:
    """Tests for pivot transforms and translation."""

    def test_flip_about_pivot(self):
        """Test a horizontal flip mirrors about the pivot."""
        t = build_transform(Point(50, 0), flip_h=True)
        assert t.transformPoint((0, 10)) == pytest.approx((100, 10))

    def test_scale_then_rotate(self):
        """Test that scaling is applied before rotation."""
        t = build_transform(Point(0, 0), scale_x=2.0, rotation=90)
        x, y = t.transformPoint((1, 0))
        assert x == pytest.approx(0)
        assert y == pytest.approx(2)

    def test_handles_get_linear_part_only(self):
        """Test that relative handles are not translated."""
        path = Path(
            id="o",
            type=PathType.OUTLINE,
            segment_groups=((Segment(Point(0, 0), handle_out=Point(10, 0)),),),
        )
        moved = apply_transform([path], Transform().translate(5, 5).scale(2))
        segment = moved[0].segment_groups[0][0]  # type: ignore[index]
        assert segment.point == Point(5, 5)
        assert segment.handle_out == Point(20, 0)

    def test_translate_keeps_tags(self):
        """Test translation keeps ids and groups."""
        path = Path(id="a", type=PathType.LINE, points=(Point(0, 0),), group_id="component-0")
        moved = translate_paths([path], 3, 4)
        assert moved[0].points == (Point(3, 4),)
        assert moved[0].id == "a"
        assert moved[0].group_id == "component-0"

    def test_zero_translation_returns_input(self):
        path = Path(id="a", type=PathType.LINE, points=(Point(0, 0),))
        assert translate_paths([path], 0, 0)[0] is path

    def test_identity_transform_returns_input(self):
        path = Path(id="a", type=PathType.LINE, points=(Point(0, 0), Point(1, 1)))
        assert transform_paths([path], 0)[0] is path

    def test_rotation_about_own_center(self):
        """Test that rotation keeps the bounding-box center in place."""
        path = Path(
            id="r",
            type=PathType.LINE,
            points=(Point(0, 0), Point(100, 0), Point(100, 50), Point(0, 50)),
        )
        rotated = transform_paths([path], 0, rotation=90)
        assert_box(glyph_bbox(rotated, 0), 25, -25, 50, 100)

    def test_scale_about_own_center(self):
        path = Path(id="r", type=PathType.LINE, points=(Point(0, 0), Point(100, 100)))
        scaled = transform_paths([path], 0, scale_x=2.0, scale_y=0.5)
        assert_box(glyph_bbox(scaled, 0), -50, 25, 200, 50)

    def test_inverse_restores_bounding_box(self):
        """Test a transform followed by its inverse gives back the original box."""
        path = Path(
            id="r",
            type=PathType.LINE,
            points=(Point(10, 20), Point(110, 20), Point(110, 70), Point(10, 70)),
        )
        forward = transform_paths([path], 0, scale_x=2.0, scale_y=0.5, rotation=30)
        back = transform_paths(
            transform_paths(forward, 0, rotation=-30), 0, scale_x=0.5, scale_y=2.0
        )
        assert_box(glyph_bbox(back, 0), 10, 20, 100, 50)
