"""Unit tests for cascade propagation."""

import asyncio
from unittest.mock import Mock, patch

import pytest
from conftest import AACUTE, AE_KERN, A, B, C, D, E, F, rect_glyph

from glyphcascade.config import CascadeConfig
from glyphcascade.core import (
    CascadeScheduler,
    CascadeTask,
    CompositeGenerator,
    DependencyGraph,
    should_rebake,
)
from glyphcascade.core.geometry import glyph_bbox
from glyphcascade.core.state import AddCharacter, ReplaceCharacter
from glyphcascade.domain import BoundingBox, Character, Point
from glyphcascade.exceptions import CascadeCancelledError


def make_task(project, source, glyph, batch_size=5, **kwargs) -> CascadeTask:
    return CascadeTask(
        source,
        glyph,
        project.layout_context(),
        DependencyGraph.from_characters(project.characters.values()),
        project.chars_by_unicode,
        config=CascadeConfig(batch_size=batch_size),
        **kwargs,
    )


def run(task: CascadeTask):
    return CascadeScheduler(task.config).run(task)


class TestShouldRebake:
    """Tests for which derivation kinds follow their components."""

    def test_kinds(self):
        assert should_rebake(Character(name="x", link=("A",)))
        assert should_rebake(Character(name="x", position=("A", "m")))
        assert should_rebake(Character(name="x", kern=("A", "E")))
        assert not should_rebake(Character(name="x", composite=("A",)))

    def test_gpos_pairs_pass_through(self):
        assert not should_rebake(Character(name="x", position=("A", "m"), gpos="mark"))


class TestCascadeTask:
    """Tests for a single propagation run."""

    def test_chain_is_patched(self, project):
        """Test an edit flows through B into C, both patched in place."""
        result = run(make_task(project, A, rect_glyph("a", 0, 0, 100, 50)))

        assert result.patched[:1] == [B]
        assert C in result.patched
        assert glyph_bbox(result.updates[C], 0) == BoundingBox(0, 0, 100, 50)

    def test_composite_is_snapshot(self, project):
        result = run(make_task(project, A, rect_glyph("a", 0, 0, 100, 50)))
        assert F not in result.updates
        assert result.stats.skipped_count >= 1

    def test_growth_falls_back_to_regeneration(self, project):
        """Test widening the first component regenerates and shifts the second."""
        result = run(make_task(project, A, rect_glyph("a", 0, 0, 120, 100)))

        assert D in result.regenerated
        second = glyph_bbox(result.updates[D].component_paths(1), 0)
        assert second == BoundingBox(120, 0, 50, 50)

    def test_patch_equals_regeneration(self, project):
        """Test every update equals what a fresh generation would produce."""
        new_a = rect_glyph("a", 0, 0, 100, 50)
        result = run(make_task(project, A, new_a))

        project.glyph_data[A] = new_a
        project.glyph_data.update(result.updates)
        generator = CompositeGenerator(project.layout_context())
        for unicode, data in result.updates.items():
            assert data == generator.generate(project.chars_by_unicode[unicode])

    def test_diamond_waits_for_every_component(self, project):
        """Test a glyph built from A and B is rebuilt only after B follows A."""
        zd = Character(name="Zd", unicode=0x40, link=("A", "B"))
        project.apply(AddCharacter(zd))
        project.glyph_data[0x40] = CompositeGenerator(project.layout_context()).generate(zd)
        new_a = rect_glyph("a", 0, 0, 100, 50)

        task = make_task(project, A, new_a)
        with patch.object(task, "_process", wraps=task._process) as process:
            result = run(task)
        order = [call.args[0] for call in process.call_args_list]

        assert B in result.updates
        assert 0x40 in result.updates
        assert order.index(B) < order.index(0x40)

        project.glyph_data[A] = new_a
        project.glyph_data.update(result.updates)
        expected = CompositeGenerator(project.layout_context()).generate(zd)
        assert result.updates[0x40] == expected
        second = glyph_bbox(result.updates[0x40].component_paths(1), 0)
        assert second.height == pytest.approx(50)

    def test_cycle_is_broken_once(self, project):
        """Test a cycle between B and C still finishes with each processed once."""
        project.apply(ReplaceCharacter(Character(name="B", unicode=B, link=("A", "C"))))

        task = make_task(project, A, rect_glyph("a", 0, 0, 100, 50))
        with patch.object(task, "_process", wraps=task._process) as process:
            run(task)
        order = [call.args[0] for call in process.call_args_list]

        assert order == [D, F, AACUTE, AE_KERN, B, C]
        assert task.pending_count == 0

    def test_input_map_untouched(self, project):
        """Test the cascade works on a copy of the glyph-data map."""
        before = dict(project.glyph_data)
        run(make_task(project, A, rect_glyph("a", 0, 0, 10, 10)))
        assert project.glyph_data == before

    def test_missing_component_recorded(self, project):
        """Test a dependent that cannot be built is reported, not written."""
        project.apply(AddCharacter(Character(name="AZ", unicode=0xE100, link=("A", "Z"))))
        result = run(make_task(project, A, rect_glyph("a", 0, 0, 100, 50)))

        assert result.missing == {"AZ": ["Z"]}
        assert 0xE100 not in result.updates
        assert result.stats.missing_components == [("AZ", ["Z"])]

    def test_gpos_pair_skipped(self, project):
        project.apply(
            ReplaceCharacter(
                Character(name="Aacute", unicode=AACUTE, position=("A", "acute"), gpos="mark")
            )
        )
        result = run(make_task(project, A, rect_glyph("a", 0, 0, 100, 50)))
        assert AACUTE not in result.updates

    def test_metadata_change_regenerates_direct_dependents(self, project):
        """Test bearings changes are not patched into direct dependents."""
        result = run(
            make_task(
                project, E, project.glyph_data[E], source_metadata_changed=True
            )
        )
        assert D in result.regenerated
        assert AE_KERN in result.regenerated

    def test_batch_size_does_not_change_result(self, project):
        new_a = rect_glyph("a", 0, 0, 120, 60)
        small = run(make_task(project, A, new_a, batch_size=1))
        large = run(make_task(project, A, new_a, batch_size=100))
        assert small.updates == large.updates
        assert small.patched == large.patched
        assert small.regenerated == large.regenerated

    def test_step_yields_between_batches(self, project):
        task = make_task(project, A, rect_glyph("a", 0, 0, 100, 50), batch_size=1)
        assert task.step() is False
        assert task.processed_count == 1
        with pytest.raises(RuntimeError):
            task.result()

    def test_renderable_pairs_counted(self, project):
        project.mark_positioning[(A, 0x301)] = Point(0, 0)
        result = run(make_task(project, A, rect_glyph("a", 0, 0, 100, 50)))
        assert result.renderable_pairs == 1
        assert result.notification_count == result.updated_count + 1


class TestCascadeScheduler:
    """Tests for driving tasks to completion."""

    def test_cancelled_when_not_alive(self, project):
        task = make_task(project, A, rect_glyph("a", 0, 0, 100, 50))
        with pytest.raises(CascadeCancelledError):
            CascadeScheduler().run(task, is_alive=lambda: False)
        assert task.cascade_logger.stats.was_cancelled

    def test_cancelled_mid_run(self, project):
        """Test the liveness check is consulted between batches."""
        task = make_task(project, A, rect_glyph("a", 0, 0, 100, 50), batch_size=1)
        alive = Mock(side_effect=[True, True, False])
        with pytest.raises(CascadeCancelledError) as exc_info:
            CascadeScheduler().run(task, is_alive=alive)
        assert exc_info.value.processed_count == 2

    def test_progress_callback(self, project):
        task = make_task(project, A, rect_glyph("a", 0, 0, 100, 50), batch_size=2)
        callback = Mock()
        CascadeScheduler().run(task, progress_callback=callback)
        assert callback.called
        assert callback.call_args.args[1] == 0

    def test_run_async(self, project):
        """Test the cooperative runner produces the same result."""
        new_a = rect_glyph("a", 0, 0, 100, 50)
        sync_result = run(make_task(project, A, new_a, batch_size=1))
        task = make_task(project, A, new_a, batch_size=1)
        async_result = asyncio.run(CascadeScheduler().run_async(task))
        assert async_result.updates == sync_result.updates

    def test_stats_timing(self, project):
        result = run(make_task(project, A, rect_glyph("a", 0, 0, 100, 50)))
        assert result.stats.start_time is not None
        assert result.stats.end_time is not None
        assert result.stats.updated_count == result.updated_count
