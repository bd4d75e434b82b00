"""Unit tests for the I/O layer.

Tests for ProjectReader, ProjectWriter and the fontTools pen bridge.
"""

import json
from pathlib import Path

import pytest
from conftest import AACUTE, A, E, rect_glyph
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.recordingPen import RecordingPen
from fontTools.pens.ttGlyphPen import TTGlyphPen

from glyphcascade.config import FontMetrics
from glyphcascade.core.geometry import glyph_bbox
from glyphcascade.domain import BoundingBox, GlyphData, PathType, Point
from glyphcascade.domain import Path as GlyphPath
from glyphcascade.exceptions import ProjectLoadError, ProjectSaveError
from glyphcascade.io import (
    FontGlyphImporter,
    ProjectReader,
    ProjectWriter,
    draw_glyph_data,
    font_to_canvas,
    glyph_data_from_recording,
    project_from_dict,
    project_to_dict,
    recording_to_segment_groups,
)


def build_test_font(path: Path) -> None:
    """Write a TrueType font with one rectangular glyph mapped to 'A'."""
    fb = FontBuilder(1000, isTTF=True)
    fb.setupGlyphOrder([".notdef", "A"])
    fb.setupCharacterMap({0x41: "A"})

    pen = TTGlyphPen(None)
    pen.moveTo((0, 0))
    pen.lineTo((0, 500))
    pen.lineTo((400, 500))
    pen.lineTo((400, 0))
    pen.closePath()

    fb.setupGlyf({".notdef": TTGlyphPen(None).glyph(), "A": pen.glyph()})
    fb.setupHorizontalMetrics({".notdef": (500, 0), "A": (500, 0)})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupOS2()
    fb.setupNameTable({"familyName": "Cascade Test", "styleName": "Regular"})
    fb.setupPost()
    fb.save(str(path))


class TestProjectDocument:
    """Tests for project_from_dict and project_to_dict."""

    def test_round_trip(self, project):
        """Test encoding and decoding keeps the whole project."""
        loaded = project_from_dict(json.loads(json.dumps(project_to_dict(project))))

        assert loaded.characters == project.characters
        assert loaded.glyph_data == project.glyph_data
        assert loaded.kerning == project.kerning
        assert loaded.character_sets == project.character_sets
        assert loaded.settings == project.settings

    def test_unlisted_characters(self, project):
        """Test characters outside any set are kept at the top level."""
        data = project_to_dict(project)
        assert [c["name"] for c in data["characters"]] == ["Aacute", "AE"]
        loaded = project_from_dict(data)
        assert loaded.chars_by_unicode[AACUTE].name == "Aacute"

    def test_mark_positioning(self, project):
        project.mark_positioning[(A, E)] = Point(3, -4)
        data = project_to_dict(project)
        assert data["markPositioning"] == [[A, E, {"x": 3, "y": -4}]]
        assert project_from_dict(data).mark_positioning == {(A, E): Point(3, -4)}

    def test_minimal_document(self):
        state = project_from_dict({})
        assert state.characters == {}
        assert state.settings.cascade.batch_size == 5


class TestProjectReader:
    """Tests for ProjectReader."""

    def test_load_nonexistent_file(self, tmp_path):
        reader = ProjectReader(tmp_path / "missing.json")
        with pytest.raises(ProjectLoadError, match="file not found"):
            reader.load()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ProjectLoadError):
            ProjectReader(path).load()

    def test_top_level_not_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ProjectLoadError, match="object"):
            ProjectReader(path).load()

    def test_invalid_settings(self, tmp_path):
        """Test settings are validated by the settings model."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"settings": {"cascade": {"batch_size": 0}}}), encoding="utf-8")
        with pytest.raises(ProjectLoadError, match="invalid settings"):
            ProjectReader(path).load()

    def test_invalid_character(self, tmp_path):
        """Test a character with a non-positive component scale is a load error."""
        path = tmp_path / "bad-char.json"
        doc = {
            "characters": [
                {"name": "X", "unicode": 88, "link": ["A"], "compositeTransform": [{"scale": 0}]}
            ]
        }
        path.write_text(json.dumps(doc), encoding="utf-8")
        with pytest.raises(ProjectLoadError):
            ProjectReader(path).load()


class TestProjectWriter:
    """Tests for ProjectWriter."""

    def test_save_and_load(self, project, tmp_path):
        path = tmp_path / "project.json"
        ProjectWriter(path).save(project)

        loaded = ProjectReader(path).load()
        assert loaded.glyph_data == project.glyph_data
        assert loaded.kerning == {(A, E): -10.0}

    def test_save_to_missing_directory(self, project, tmp_path):
        with pytest.raises(ProjectSaveError):
            ProjectWriter(tmp_path / "nope" / "project.json").save(project)

    def test_get_updated_path(self):
        """Test default output path generation."""
        assert ProjectWriter.get_updated_path(Path("/fonts/sans.json")) == Path(
            "/fonts/sans-updated.json"
        )


class TestPens:
    """Tests for drawing glyphs into fontTools pens."""

    def test_font_to_canvas_flips_y(self):
        transform = font_to_canvas(FontMetrics(base_line_y=600))
        assert transform.transformPoint((10, 0)) == (10, 600)
        assert transform.transformPoint((10, 500)) == (10, 100)

    def test_line_path(self):
        pen = RecordingPen()
        draw_glyph_data(rect_glyph("r", 0, 0, 10, 20), pen)
        assert pen.value == [
            ("moveTo", ((0, 0),)),
            ("lineTo", ((10, 0),)),
            ("lineTo", ((10, 20),)),
            ("lineTo", ((0, 20),)),
            ("endPath", ()),
        ]

    def test_dot_skipped(self):
        pen = RecordingPen()
        dot = GlyphPath(id="d", type=PathType.DOT, points=(Point(5, 5),))
        draw_glyph_data(GlyphData(paths=(dot,)), pen)
        assert pen.value == []

    def test_pen_stroke_uses_quadratics(self):
        pen = RecordingPen()
        stroke = GlyphPath(
            id="p", type=PathType.PEN, points=(Point(0, 0), Point(10, 10), Point(20, 0))
        )
        draw_glyph_data(GlyphData(paths=(stroke,)), pen)
        commands = [command for command, _ in pen.value]
        assert commands[0] == "moveTo"
        assert "qCurveTo" in commands
        assert commands[-1] == "endPath"


class TestRecordingConversion:
    """Tests for converting pen recordings into outline paths."""

    def test_lines(self):
        groups = recording_to_segment_groups(
            [
                ("moveTo", ((0, 0),)),
                ("lineTo", ((10, 0),)),
                ("lineTo", ((10, 10),)),
                ("closePath", ()),
            ]
        )
        assert len(groups) == 1
        assert [s.point for s in groups[0]] == [Point(0, 0), Point(10, 0), Point(10, 10)]
        assert all(s.handle_in == Point(0, 0) for s in groups[0])

    def test_quadratic_raised_to_cubic(self):
        """Test quadratic handles are scaled by two thirds."""
        groups = recording_to_segment_groups(
            [("moveTo", ((0, 0),)), ("qCurveTo", ((5, 10), (10, 0))), ("closePath", ())]
        )
        start, end = groups[0]
        assert start.handle_out.x == pytest.approx(10 / 3)
        assert start.handle_out.y == pytest.approx(20 / 3)
        assert end.handle_in.x == pytest.approx(-10 / 3)
        assert end.handle_in.y == pytest.approx(20 / 3)

    def test_closing_point_folded(self):
        groups = recording_to_segment_groups(
            [
                ("moveTo", ((0, 0),)),
                ("lineTo", ((10, 0),)),
                ("lineTo", ((0, 0),)),
                ("closePath", ()),
            ]
        )
        assert [s.point for s in groups[0]] == [Point(0, 0), Point(10, 0)]

    def test_implied_start_contour_skipped(self):
        groups = recording_to_segment_groups(
            [("qCurveTo", ((0, 0), (10, 0), None)), ("closePath", ())]
        )
        assert groups == ()

    def test_empty_recording(self):
        assert glyph_data_from_recording([], "x") == GlyphData()


class TestFontGlyphImporter:
    """Tests for reading outlines from a font file."""

    def test_missing_font(self, tmp_path):
        importer = FontGlyphImporter(tmp_path / "missing.ttf", FontMetrics())
        with pytest.raises(ProjectLoadError, match="font file not found"):
            importer.read([0x41])

    def test_not_a_font(self, tmp_path):
        path = tmp_path / "fake.ttf"
        path.write_bytes(b"not a font")
        with pytest.raises(ProjectLoadError):
            FontGlyphImporter(path, FontMetrics()).read([0x41])

    def test_read_outline(self, tmp_path):
        """Test a font rectangle arrives flipped into canvas space."""
        path = tmp_path / "test.ttf"
        build_test_font(path)

        glyphs = FontGlyphImporter(path, FontMetrics(base_line_y=600)).read([0x41, 0x42])

        assert list(glyphs) == [0x41]
        data = glyphs[0x41]
        assert data.paths[0].type is PathType.OUTLINE
        assert data.paths[0].id == "import.A"
        assert glyph_bbox(data, 0) == BoundingBox(0, 100, 400, 500)
