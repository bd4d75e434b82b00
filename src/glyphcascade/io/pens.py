"""Bridge between glyph paths and fontTools pens.

Glyphs are drawn into fontTools pens for measurement and export, and font
outlines are recorded with a RecordingPen and converted into OUTLINE paths so
glyphs can be imported from an existing TTF/OTF file.

Font units have y growing upward; canvas coordinates have y growing
downward with the baseline at ``FontMetrics.base_line_y``. Conversion is
done with a TransformPen so recordings arrive already in canvas space.
"""

from collections.abc import Iterable
from pathlib import Path as FilePath
from typing import Any

import structlog
from fontTools.misc.transform import Transform
from fontTools.pens.basePen import AbstractPen, decomposeQuadraticSegment
from fontTools.pens.recordingPen import RecordingPen
from fontTools.pens.transformPen import TransformPen
from fontTools.ttLib import TTFont, TTLibError

from glyphcascade.config import FontMetrics
from glyphcascade.core.geometry import draw_outline, quadratic_spline_pieces, vec_sub
from glyphcascade.domain import ORIGIN, GlyphData, Path, PathType, Point, Segment
from glyphcascade.exceptions import ProjectLoadError

logger = structlog.get_logger(__name__)


def font_to_canvas(metrics: FontMetrics) -> Transform:
    """Transform from font units to canvas coordinates."""
    return Transform(1, 0, 0, -1, 0, metrics.base_line_y)


def draw_glyph_data(data: GlyphData, pen: AbstractPen) -> None:
    """Draw a glyph into a fontTools pen.

    Outlines are drawn as closed cubic contours. Stroked paths are drawn as
    open centerlines; pen strokes and curves keep their quadratic pieces.
    Dots have no centerline and are skipped.

    Args:
        data: Glyph to draw
        pen: Any fontTools segment pen
    """
    for path in data.paths:
        if path.type is PathType.OUTLINE:
            draw_outline(path, pen)
            continue
        points = path.points
        if path.type is PathType.DOT or len(points) < 2:
            continue

        pen.moveTo(points[0].to_tuple())
        if path.type in (PathType.PEN, PathType.CALLIGRAPHY, PathType.CURVE) and len(points) > 2:
            for _, control, end in quadratic_spline_pieces(points):
                pen.qCurveTo(control.to_tuple(), end.to_tuple())
        else:
            for point in points[1:]:
                pen.lineTo(point.to_tuple())
        pen.endPath()


def _quad_to_cubic(start: Point, control: Point, end: Point) -> tuple[Point, Point]:
    """Relative handles (out of start, into end) for a quadratic piece."""
    return (
        Point((control.x - start.x) * 2 / 3, (control.y - start.y) * 2 / 3),
        Point((control.x - end.x) * 2 / 3, (control.y - end.y) * 2 / 3),
    )


def _close_group(segments: list[Segment]) -> tuple[Segment, ...]:
    # An explicit closing point duplicates the start anchor; fold its handle in
    if len(segments) > 1 and segments[-1].point == segments[0].point:
        last = segments.pop()
        segments[0] = Segment(segments[0].point, last.handle_in, segments[0].handle_out)
    return tuple(segments)


def recording_to_segment_groups(
    recording: Iterable[tuple[str, tuple[Any, ...]]],
) -> tuple[tuple[Segment, ...], ...]:
    """Convert RecordingPen commands to closed cubic segment groups.

    Lines become segments with zero handles and quadratic curves are raised
    to cubics. Open contours are closed. TrueType contours made only of
    off-curve points are skipped.

    Args:
        recording: ``RecordingPen.value``

    Returns:
        Segment groups, one per contour
    """
    groups: list[tuple[Segment, ...]] = []
    segments: list[Segment] = []

    def extend(handle_out: Point, handle_in: Point, point: Point) -> None:
        prev = segments[-1]
        segments[-1] = Segment(prev.point, prev.handle_in, handle_out)
        segments.append(Segment(point, handle_in, ORIGIN))

    for command, args in recording:
        if command == "moveTo":
            if segments:
                groups.append(_close_group(segments))
            segments = [Segment(Point(*args[0]))]
        elif command == "lineTo":
            extend(ORIGIN, ORIGIN, Point(*args[0]))
        elif command == "curveTo":
            c1, c2, end = (Point(*p) for p in args)
            extend(vec_sub(c1, segments[-1].point), vec_sub(c2, end), end)
        elif command == "qCurveTo":
            if args[-1] is None or not segments:
                logger.debug("Skipping implied-start quadratic contour")
                segments = []
                continue
            for control, end in decomposeQuadraticSegment(args):
                start = segments[-1].point
                out, into = _quad_to_cubic(start, Point(*control), Point(*end))
                extend(out, into, Point(*end))
        elif command in ("closePath", "endPath"):
            if segments:
                groups.append(_close_group(segments))
            segments = []

    if segments:
        groups.append(_close_group(segments))
    return tuple(g for g in groups if len(g) > 1)


def glyph_data_from_recording(
    recording: Iterable[tuple[str, tuple[Any, ...]]], path_id: str
) -> GlyphData:
    """Wrap a recording as a single-outline glyph (empty if nothing drawable)."""
    groups = recording_to_segment_groups(recording)
    if not groups:
        return GlyphData()
    return GlyphData(paths=(Path(id=path_id, type=PathType.OUTLINE, segment_groups=groups),))


class FontGlyphImporter:
    """Reads glyph outlines from a TTF/OTF font.

    Example:
        importer = FontGlyphImporter(Path("font.ttf"), settings.metrics)
        glyphs = importer.read([0x41, 0x42])
        session.import_glyphs(glyphs)
    """

    def __init__(self, font_path: FilePath, metrics: FontMetrics) -> None:
        self._font_path = font_path
        self._metrics = metrics

    def _open(self) -> TTFont:
        if not self._font_path.exists():
            raise ProjectLoadError(str(self._font_path), "font file not found")
        try:
            return TTFont(str(self._font_path))
        except (OSError, TTLibError) as e:
            raise ProjectLoadError(str(self._font_path), str(e)) from e

    def read(self, unicodes: Iterable[int]) -> dict[int, GlyphData]:
        """Read outlines for the given code points.

        Code points the font does not map are left out of the result.

        Raises:
            ProjectLoadError: If the font cannot be opened
        """
        font = self._open()
        try:
            cmap = font.getBestCmap() or {}
            glyph_set = font.getGlyphSet()
            transform = font_to_canvas(self._metrics)
            result: dict[int, GlyphData] = {}
            for unicode in unicodes:
                glyph_name = cmap.get(unicode)
                if glyph_name is None:
                    continue
                recording = RecordingPen()
                glyph_set[glyph_name].draw(TransformPen(recording, transform))
                result[unicode] = glyph_data_from_recording(
                    recording.value, f"import.{glyph_name}"
                )
            logger.info("Imported font outlines", font=str(self._font_path), count=len(result))
            return result
        finally:
            font.close()
