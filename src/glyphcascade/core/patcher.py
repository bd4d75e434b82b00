"""Incremental update of one component inside an already generated glyph.

Patching replaces the paths tagged ``component-<index>`` with freshly placed
geometry and leaves every other path untouched. The placement is re-derived
with the same layout code the generator uses, so a successful patch is
indistinguishable from a full regeneration. Whenever that cannot be
guaranteed the patcher returns None and the caller regenerates.
"""

from collections.abc import Sequence

import structlog

from glyphcascade.core.composite import (
    ComponentLayout,
    LayoutContext,
    place_component,
    shape_component,
)
from glyphcascade.core.geometry import glyph_bbox
from glyphcascade.domain import BoundingBox, Character, Path

logger = structlog.get_logger(__name__)


def _union_bbox(
    paths: Sequence[Path], upto: int, stroke_thickness: float
) -> BoundingBox | None:
    prefix = [p for p in paths if p.component_index is not None and p.component_index <= upto]
    return glyph_bbox(prefix, stroke_thickness) if prefix else None


class SmartPatcher:
    """Patches single components of derived glyphs in place."""

    def __init__(self, context: LayoutContext, tolerance: float = 1e-6) -> None:
        self.context = context
        self.tolerance = tolerance
        self.layout = ComponentLayout(context)

    def patch(
        self,
        owner: Character,
        current_paths: Sequence[Path],
        index: int,
        new_paths: Sequence[Path],
    ) -> list[Path] | None:
        """Replace one component's contribution.

        Args:
            owner: The derived character being patched
            current_paths: The owner's current full path list
            index: Index of the changed component
            new_paths: The component's new source geometry

        Returns:
            The patched path list, or None if the patch is not possible:
            no paths are tagged for the component, a path is untagged, a
            bounding box cannot be computed, or the component's new extent
            would move a later component
        """
        components = owner.components
        if index < 0 or index >= len(components):
            return None

        stroke = self.context.stroke_thickness
        old_group = [i for i, p in enumerate(current_paths) if p.component_index == index]
        if not old_group:
            return None
        if any(
            p.component_index is None or p.component_index >= len(components)
            for p in current_paths
        ):
            return None

        char = self.context.chars_by_name.get(components[index])
        if char is None:
            return None
        prev_char = self.context.chars_by_name.get(components[index - 1]) if index > 0 else None

        shaped = shape_component(new_paths, owner.transform_for(index), stroke)
        bbox = glyph_bbox(shaped, stroke)
        if bbox is None:
            return None

        accumulated_bbox = _union_bbox(current_paths, index - 1, stroke) if index > 0 else None
        offset = self.layout.offset_for(owner, index, prev_char, char, accumulated_bbox, bbox)
        if offset is None:
            return None

        placed = place_component(owner, index, shaped, offset)
        first = old_group[0]
        old_indices = set(old_group)
        patched = list(current_paths[:first])
        patched.extend(placed)
        patched.extend(p for i, p in enumerate(current_paths[first:], first) if i not in old_indices)

        if index < len(components) - 1:
            before = _union_bbox(current_paths, index, stroke)
            after = _union_bbox(patched, index, stroke)
            if before is None or after is None or not before.is_close(after, self.tolerance):
                logger.debug(
                    "Patch would move later components",
                    glyph=owner.name,
                    component=index,
                )
                return None

        return patched


def update_component_in_paths(
    context: LayoutContext,
    owner: Character,
    current_paths: Sequence[Path],
    index: int,
    new_paths: Sequence[Path],
    tolerance: float = 1e-6,
) -> list[Path] | None:
    """Patch one component of a derived glyph.

    Convenience wrapper around SmartPatcher.patch.
    """
    return SmartPatcher(context, tolerance).patch(owner, current_paths, index, new_paths)
