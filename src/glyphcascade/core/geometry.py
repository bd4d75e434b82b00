"""Geometric operations for glyph paths.

This module provides core mathematical utilities for:
- 2D vector arithmetic
- Accurate bounding boxes over stroked and outlined paths
- Rotate/scale/flip of paths about an arbitrary pivot
- Translation of paths

Affine maps are fontTools Transform objects, outline bounds are measured with a
fontTools BoundsPen and curve pieces use the exact extrema from bezierTools.
All functions are pure and stateless.
"""

import math
from collections.abc import Iterable, Sequence

from fontTools.misc.bezierTools import calcQuadraticBounds
from fontTools.misc.transform import Transform
from fontTools.pens.basePen import AbstractPen
from fontTools.pens.boundsPen import BoundsPen

from glyphcascade.domain import BoundingBox, GlyphData, Path, PathType, Point, Segment


def vec_add(a: Point, b: Point) -> Point:
    """Add two vectors."""
    return Point(a.x + b.x, a.y + b.y)


def vec_sub(a: Point, b: Point) -> Point:
    """Subtract vector b from vector a."""
    return Point(a.x - b.x, a.y - b.y)


def vec_scale(p: Point, s: float) -> Point:
    """Scale a vector by a scalar."""
    return Point(p.x * s, p.y * s)


def vec_len(p: Point) -> float:
    """Length of a vector."""
    return math.hypot(p.x, p.y)


def vec_rotate(p: Point, angle: float) -> Point:
    """Rotate a vector about the origin.

    Args:
        p: Vector to rotate
        angle: Angle in radians

    Returns:
        Rotated vector
    """
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return Point(p.x * cos_a - p.y * sin_a, p.x * sin_a + p.y * cos_a)


def quadratic_spline_pieces(
    points: Sequence[Point],
) -> list[tuple[Point, Point, Point]]:
    """Split a pen stroke into its quadratic Bezier pieces.

    Pen strokes are drawn as a quadratic B-spline: interior points are control
    points and the on-curve points are the midpoints between them.

    Args:
        points: Stroke points (at least 3)

    Returns:
        List of (start, control, end) triples
    """
    if len(points) < 3:
        return []

    pieces: list[tuple[Point, Point, Point]] = []
    start = points[0]
    for i in range(1, len(points) - 2):
        control = points[i]
        end = Point((points[i].x + points[i + 1].x) / 2, (points[i].y + points[i + 1].y) / 2)
        pieces.append((start, control, end))
        start = end
    pieces.append((start, points[-2], points[-1]))
    return pieces


def draw_outline(path: Path, pen: AbstractPen) -> None:
    """Draw an outline path's segment groups into a fontTools pen.

    Each non-empty segment group becomes one closed cubic contour.

    Args:
        path: OUTLINE path
        pen: Any fontTools segment pen
    """
    for group in path.segment_groups or ():
        if not group:
            continue
        pen.moveTo(group[0].point.to_tuple())
        count = len(group)
        for i in range(count):
            current = group[i]
            nxt = group[(i + 1) % count]
            pen.curveTo(
                vec_add(current.point, current.handle_out).to_tuple(),
                vec_add(nxt.point, nxt.handle_in).to_tuple(),
                nxt.point.to_tuple(),
            )
        pen.closePath()


def _path_extents(
    path: Path, stroke_thickness: float
) -> tuple[float, float, float, float] | None:
    if path.type is PathType.OUTLINE and path.segment_groups:
        pen = BoundsPen(None)
        draw_outline(path, pen)
        return pen.bounds

    if not path.points:
        return None

    if path.type is PathType.DOT:
        center = path.points[0]
        if len(path.points) > 1:
            radius = vec_len(vec_sub(path.points[1], center))
        else:
            radius = stroke_thickness / 2
        return (center.x - radius, center.y - radius, center.x + radius, center.y + radius)

    if path.type in (PathType.PEN, PathType.CALLIGRAPHY) and len(path.points) > 2:
        boxes = [
            calcQuadraticBounds(a.to_tuple(), b.to_tuple(), c.to_tuple())
            for a, b, c in quadratic_spline_pieces(path.points)
        ]
        min_x = min(b[0] for b in boxes)
        min_y = min(b[1] for b in boxes)
        max_x = max(b[2] for b in boxes)
        max_y = max(b[3] for b in boxes)
    elif path.type is PathType.CURVE and len(path.points) == 3:
        a, b, c = path.points
        min_x, min_y, max_x, max_y = calcQuadraticBounds(
            a.to_tuple(), b.to_tuple(), c.to_tuple()
        )
    else:
        min_x = min(p.x for p in path.points)
        min_y = min(p.y for p in path.points)
        max_x = max(p.x for p in path.points)
        max_y = max(p.y for p in path.points)

    half = stroke_thickness / 2
    return (min_x - half, min_y - half, max_x + half, max_y + half)


def glyph_bbox(
    data: GlyphData | Iterable[Path], stroke_thickness: float
) -> BoundingBox | None:
    """Calculate an accurate bounding box for a set of paths.

    Stroked paths are padded by half the stroke thickness so thin strokes are
    measured at their rendered size. Outlines are filled and measured exactly.
    Results for GlyphData are cached per stroke thickness.

    Args:
        data: GlyphData or any iterable of paths
        stroke_thickness: Global stroke thickness

    Returns:
        BoundingBox, or None if nothing measurable is present

    Examples:
        >>> line = Path(id="a", type=PathType.LINE, points=(Point(0, 0), Point(100, 0)))
        >>> glyph_bbox([line], 10)
        BoundingBox(x=-5.0, y=-5.0, width=110.0, height=10.0)
    """
    glyph_data = data if isinstance(data, GlyphData) else None
    if glyph_data is not None:
        cached = glyph_data._cached_bbox
        if cached is not None and cached[0] == stroke_thickness:
            return cached[1]
        paths: Iterable[Path] = glyph_data.paths
    else:
        paths = data  # type: ignore[assignment]

    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    found = False
    for path in paths:
        extents = _path_extents(path, stroke_thickness)
        if extents is None:
            continue
        found = True
        min_x = min(min_x, extents[0])
        min_y = min(min_y, extents[1])
        max_x = max(max_x, extents[2])
        max_y = max(max_y, extents[3])

    result = BoundingBox.from_extents(min_x, min_y, max_x, max_y) if found else None

    if glyph_data is not None:
        glyph_data._cached_bbox = (stroke_thickness, result)
    return result


def build_transform(
    pivot: Point,
    scale_x: float = 1.0,
    scale_y: float = 1.0,
    rotation: float = 0.0,
    flip_h: bool = False,
    flip_v: bool = False,
) -> Transform:
    """Build a rotate/scale/flip transform about a pivot.

    Points are mapped in a fixed order: translate to the pivot, scale (a flip
    is a negative scale on one axis), rotate, translate back.

    Args:
        pivot: Center of the transform
        scale_x: Horizontal scale factor
        scale_y: Vertical scale factor
        rotation: Rotation in degrees
        flip_h: Mirror horizontally
        flip_v: Mirror vertically

    Returns:
        fontTools Transform
    """
    sx = -scale_x if flip_h else scale_x
    sy = -scale_y if flip_v else scale_y
    # fontTools composes right to left: the last call is applied to points first
    return (
        Transform()
        .translate(pivot.x, pivot.y)
        .rotate(math.radians(rotation))
        .scale(sx, sy)
        .translate(-pivot.x, -pivot.y)
    )


def apply_transform(paths: Iterable[Path], transform: Transform) -> tuple[Path, ...]:
    """Map every point and handle of a set of paths through an affine transform.

    Anchor points receive the full transform; relative handles receive only
    its linear part.

    Args:
        paths: Paths to transform
        transform: fontTools Transform

    Returns:
        Tuple of new paths
    """
    linear = Transform(transform.xx, transform.xy, transform.yx, transform.yy, 0, 0)

    def map_point(p: Point) -> Point:
        x, y = transform.transformPoint((p.x, p.y))
        return Point(x, y)

    def map_vector(v: Point) -> Point:
        x, y = linear.transformPoint((v.x, v.y))
        return Point(x, y)

    result = []
    for path in paths:
        groups = None
        if path.segment_groups is not None:
            groups = tuple(
                tuple(
                    Segment(
                        point=map_point(s.point),
                        handle_in=map_vector(s.handle_in),
                        handle_out=map_vector(s.handle_out),
                    )
                    for s in group
                )
                for group in path.segment_groups
            )
        result.append(
            Path(
                id=path.id,
                type=path.type,
                points=tuple(map_point(p) for p in path.points),
                segment_groups=groups,
                angle=path.angle,
                group_id=path.group_id,
            )
        )
    return tuple(result)


def translate_paths(paths: Iterable[Path], dx: float, dy: float) -> tuple[Path, ...]:
    """Translate a set of paths.

    Handles are relative and therefore unchanged.

    Args:
        paths: Paths to move
        dx: Horizontal shift
        dy: Vertical shift

    Returns:
        Tuple of new paths (the input paths themselves when the shift is zero)
    """
    if dx == 0 and dy == 0:
        return tuple(paths)
    return apply_transform(paths, Transform().translate(dx, dy))


def transform_paths(
    paths: Sequence[Path],
    stroke_thickness: float,
    scale_x: float = 1.0,
    scale_y: float = 1.0,
    rotation: float = 0.0,
    flip_h: bool = False,
    flip_v: bool = False,
    pivot: Point | None = None,
) -> tuple[Path, ...]:
    """Rotate, scale and flip paths about a pivot.

    The pivot defaults to the center of the paths' own bounding box. The
    identity transform returns the input unchanged.

    Args:
        paths: Paths to transform
        stroke_thickness: Stroke thickness used to measure the bounding box
        scale_x: Horizontal scale factor
        scale_y: Vertical scale factor
        rotation: Rotation in degrees
        flip_h: Mirror horizontally
        flip_v: Mirror vertically
        pivot: Explicit pivot

    Returns:
        Tuple of transformed paths
    """
    if scale_x == 1.0 and scale_y == 1.0 and rotation == 0.0 and not flip_h and not flip_v:
        return tuple(paths)

    if pivot is None:
        bbox = glyph_bbox(paths, stroke_thickness)
        if bbox is None:
            return tuple(paths)
        pivot = bbox.center

    return apply_transform(
        paths, build_transform(pivot, scale_x, scale_y, rotation, flip_h, flip_v)
    )
