"""Unit tests for in-place component patching."""

from conftest import A, B, D, E, rect_glyph, rect_path

from glyphcascade.core import CompositeGenerator, SmartPatcher, update_component_in_paths
from glyphcascade.domain import Path, PathType, Point


class TestSmartPatcher:
    """Tests for SmartPatcher.patch."""

    def test_last_component_matches_regeneration(self, project):
        """Test patching the last component equals a full rebuild."""
        new_e = rect_glyph("e", 0, 0, 60, 40)
        owner = project.characters["D"]
        patched = update_component_in_paths(
            project.layout_context(), owner, project.glyph_data[D].paths, 1, new_e.paths
        )

        project.glyph_data[E] = new_e
        expected = CompositeGenerator(project.layout_context()).generate(owner)
        assert patched is not None
        assert tuple(patched) == expected.paths

    def test_first_component_same_extent(self, project):
        """Test a change that keeps the prefix box can be patched."""
        diagonal = (
            Path(id="d", type=PathType.LINE, points=(Point(0, 0), Point(100, 100))),
        )
        owner = project.characters["D"]
        patched = SmartPatcher(project.layout_context()).patch(
            owner, project.glyph_data[D].paths, 0, diagonal
        )

        assert patched is not None
        assert [p.id for p in patched] == ["D.c0.0", "D.c1.0"]
        assert patched[0].points == (Point(0, 0), Point(100, 100))
        assert patched[1] == project.glyph_data[D].paths[1]

    def test_first_component_grows(self, project):
        """Test a change that would move later components is refused."""
        wider = rect_glyph("a", 0, 0, 120, 100).paths
        patched = SmartPatcher(project.layout_context()).patch(
            project.characters["D"], project.glyph_data[D].paths, 0, wider
        )
        assert patched is None

    def test_untagged_path_refused(self, project):
        """Test a glyph with hand-drawn additions is not patched."""
        paths = project.glyph_data[B].paths + (rect_path("extra", 0, 0, 5, 5),)
        patched = SmartPatcher(project.layout_context()).patch(
            project.characters["B"], paths, 0, project.glyph_data[A].paths
        )
        assert patched is None

    def test_missing_group_refused(self, project):
        patched = SmartPatcher(project.layout_context()).patch(
            project.characters["D"], (), 0, project.glyph_data[A].paths
        )
        assert patched is None

    def test_index_out_of_range(self, project):
        patched = SmartPatcher(project.layout_context()).patch(
            project.characters["B"], project.glyph_data[B].paths, 3, project.glyph_data[A].paths
        )
        assert patched is None

    def test_empty_source_refused(self, project):
        """Test a component without measurable geometry is not patched."""
        patched = SmartPatcher(project.layout_context()).patch(
            project.characters["B"], project.glyph_data[B].paths, 0, ()
        )
        assert patched is None

    def test_tolerance(self, project):
        """Test that a tiny prefix change is accepted within tolerance."""
        nudged = rect_glyph("a", 0, 0, 100.0005, 100).paths
        owner = project.characters["D"]
        strict = SmartPatcher(project.layout_context()).patch(
            owner, project.glyph_data[D].paths, 0, nudged
        )
        loose = SmartPatcher(project.layout_context(), tolerance=0.01).patch(
            owner, project.glyph_data[D].paths, 0, nudged
        )
        assert strict is None
        assert loose is not None
