"""Composite glyph generation.

A derived glyph is laid out from its components strictly in list order. Each
component is shaped (scaled and rotated about its own center), placed against
the geometry accumulated so far, and tagged ``component-<index>`` so it can be
patched in place later.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace

import structlog

from glyphcascade.config import FontMetrics, RenderSettings
from glyphcascade.core.geometry import glyph_bbox, transform_paths, translate_paths
from glyphcascade.core.placement import default_component_offset
from glyphcascade.domain import (
    ORIGIN,
    BoundingBox,
    Character,
    ComponentTransform,
    DerivationKind,
    GlyphClass,
    GlyphData,
    Path,
    Point,
    RuleSet,
    TransformMode,
    is_glyph_drawn,
)
from glyphcascade.exceptions import MissingComponentError

logger = structlog.get_logger(__name__)

ZERO_WIDTH_SPECIALS = frozenset({0x20, 0x200C, 0x200D})


def component_group_id(index: int) -> str:
    """Group tag for paths contributed by a component."""
    return f"component-{index}"


def component_path_id(owner: str, index: int, n: int) -> str:
    """Deterministic id of the n-th path contributed by a component."""
    return f"{owner}.c{index}.{n}"


@dataclass
class LayoutContext:
    """Read-only inputs shared by generation and patching.

    Attributes:
        chars_by_name: Character lookup by name
        glyph_data: Geometry by code point (the cascade's working map)
        render: Render settings (stroke thickness)
        metrics: Font metrics (default bearings)
        rules: Attachment and positioning rules
        character_sets: Character set name -> member names
        mark_positioning: (base, mark) code points -> manual mark offset
        kerning: (left, right) code points -> kerning value
    """

    chars_by_name: Mapping[str, Character]
    glyph_data: Mapping[int, GlyphData]
    render: RenderSettings = field(default_factory=RenderSettings)
    metrics: FontMetrics = field(default_factory=FontMetrics)
    rules: RuleSet = field(default_factory=RuleSet)
    character_sets: Mapping[str, Sequence[str]] = field(default_factory=dict)
    mark_positioning: Mapping[tuple[int, int], Point] = field(default_factory=dict)
    kerning: Mapping[tuple[int, int], float] = field(default_factory=dict)

    @property
    def stroke_thickness(self) -> float:
        return self.render.stroke_thickness

    def with_glyph_data(self, glyph_data: Mapping[int, GlyphData]) -> "LayoutContext":
        """Return a copy reading geometry from another map."""
        return replace(self, glyph_data=glyph_data)

    def component_glyph(self, name: str) -> tuple[Character, GlyphData] | None:
        """Resolve a component name to its character and drawn geometry."""
        char = self.chars_by_name.get(name)
        if char is None or char.unicode is None:
            return None
        data = self.glyph_data.get(char.unicode)
        if not is_glyph_drawn(data):
            return None
        return char, data  # type: ignore[return-value]


def shape_component(
    paths: Sequence[Path], transform: ComponentTransform, stroke_thickness: float
) -> tuple[Path, ...]:
    """Scale and rotate a component about its own bounding-box center."""
    if not transform.has_shape_change:
        return tuple(paths)
    return transform_paths(
        paths,
        stroke_thickness,
        scale_x=transform.scale,
        scale_y=transform.scale,
        rotation=transform.rotation,
    )


def place_component(
    owner: Character,
    index: int,
    paths: Sequence[Path],
    offset: Point,
) -> list[Path]:
    """Translate shaped component paths and tag them with the component index."""
    moved = translate_paths(paths, offset.x, offset.y)
    group_id = component_group_id(index)
    return [
        p.tagged(component_path_id(owner.name, index, n), group_id)
        for n, p in enumerate(moved)
    ]


class ComponentLayout:
    """Computes the translation of one component of a derived glyph.

    The translation is the automatic offset for the component's mode plus the
    transform's (x, y):
    - index 0 and ``absolute`` mode: no automatic offset
    - ``touching``: left edge flush with the right edge of the accumulated box
    - otherwise marks and ``position`` pairs attach with anchor rules (or a
      manual mark-positioning entry), everything else sits side by side, with
      the kerning value added for ``kern`` pairs
    """

    def __init__(self, context: LayoutContext) -> None:
        self.context = context

    def offset_for(
        self,
        owner: Character,
        index: int,
        prev_char: Character | None,
        char: Character,
        accumulated_bbox: BoundingBox | None,
        bbox: BoundingBox | None,
    ) -> Point | None:
        """Compute the offset of component ``index``.

        Args:
            owner: The derived character
            index: Component index
            prev_char: Previous component (None for index 0)
            char: This component
            accumulated_bbox: Box of components 0..index-1 as placed
            bbox: Box of this component after shaping

        Returns:
            The offset, or None if a required bounding box is missing
        """
        transform = owner.transform_for(index)
        auto = self._auto_offset(owner, transform, index, prev_char, char, accumulated_bbox, bbox)
        if auto is None:
            return None
        return Point(auto.x + transform.x, auto.y + transform.y)

    def _auto_offset(
        self,
        owner: Character,
        transform: ComponentTransform,
        index: int,
        prev_char: Character | None,
        char: Character,
        accumulated_bbox: BoundingBox | None,
        bbox: BoundingBox | None,
    ) -> Point | None:
        if index == 0 or prev_char is None or transform.mode is TransformMode.ABSOLUTE:
            return ORIGIN
        if accumulated_bbox is None or bbox is None:
            return None

        if transform.mode is TransformMode.TOUCHING:
            return Point(accumulated_bbox.right - bbox.x, 0.0)

        ctx = self.context
        kind = owner.derivation_kind
        if kind is DerivationKind.POSITION or char.glyph_class is GlyphClass.MARK:
            if kind is DerivationKind.POSITION and prev_char.unicode is not None:
                manual = ctx.mark_positioning.get((prev_char.unicode, char.unicode))
                if manual is not None:
                    return manual
            return default_component_offset(
                prev_char,
                char,
                accumulated_bbox,
                bbox,
                ctx.rules,
                ctx.metrics,
                ctx.character_sets,
                as_mark=True,
            )

        offset = default_component_offset(
            prev_char,
            char,
            accumulated_bbox,
            bbox,
            ctx.rules,
            ctx.metrics,
            ctx.character_sets,
            as_mark=False,
        )
        if kind is DerivationKind.KERN and prev_char.unicode is not None:
            value = ctx.kerning.get((prev_char.unicode, char.unicode), 0.0)
            offset = Point(offset.x + value, offset.y)
        return offset


class CompositeGenerator:
    """Builds derived glyph geometry from scratch.

    Generation fails closed: if any component is missing or undrawn the
    result is None rather than partial geometry. Output is fully determined
    by the inputs, so repeated runs produce identical paths (ids included).

    Example:
        >>> generator = CompositeGenerator(context)
        >>> data = generator.generate(chars_by_name["Aacute"])
    """

    def __init__(self, context: LayoutContext) -> None:
        self.context = context
        self.layout = ComponentLayout(context)

    def missing_components(self, character: Character) -> list[str]:
        """Names of components that are missing, undrawn or have no measurable box."""
        stroke = self.context.stroke_thickness
        missing = []
        for name in character.components:
            entry = self.context.component_glyph(name)
            if entry is None or glyph_bbox(entry[1], stroke) is None:
                missing.append(name)
        return missing

    def is_renderable(self, character: Character) -> bool:
        """Check if a character can be shown.

        A character is renderable when it is drawn, when all of its
        components are drawn, or when it is one of the zero-width specials.
        """
        if character.unicode is not None and is_glyph_drawn(
            self.context.glyph_data.get(character.unicode)
        ):
            return True
        if character.is_derived():
            return not self.missing_components(character)
        return character.unicode in ZERO_WIDTH_SPECIALS

    def generate(self, character: Character) -> GlyphData | None:
        """Generate the geometry of a derived character.

        Args:
            character: Character with a non-empty component list

        Returns:
            New GlyphData, or None if a component is missing, undrawn or has
            no measurable bounding box
        """
        components = character.components
        if not components:
            return None

        resolved = [self.context.component_glyph(name) for name in components]
        if any(r is None for r in resolved):
            logger.debug(
                "Generation skipped",
                glyph=character.name,
                missing=self.missing_components(character),
            )
            return None

        stroke = self.context.stroke_thickness
        accumulated: list[Path] = []
        prev_char: Character | None = None
        for index, entry in enumerate(resolved):
            char, data = entry  # type: ignore[misc]
            shaped = shape_component(data.paths, character.transform_for(index), stroke)
            bbox = glyph_bbox(shaped, stroke)
            accumulated_bbox = glyph_bbox(accumulated, stroke) if accumulated else None
            offset = self.layout.offset_for(
                character, index, prev_char, char, accumulated_bbox, bbox
            )
            if offset is None:
                logger.debug(
                    "Generation failed", glyph=character.name, component=char.name
                )
                return None
            accumulated.extend(place_component(character, index, shaped, offset))
            prev_char = char

        if not accumulated:
            return None
        return GlyphData(paths=tuple(accumulated))

    def generate_or_raise(self, character: Character) -> GlyphData:
        """Generate geometry, raising if any component is unavailable.

        Raises:
            MissingComponentError: If a component is missing or undrawn
        """
        data = self.generate(character)
        if data is None:
            missing = self.missing_components(character) or list(character.components)
            raise MissingComponentError(character.name, missing)
        return data

    def fit_transforms(
        self, character: Character, target: GlyphData
    ) -> tuple[ComponentTransform, ...] | None:
        """Fit component transforms so generation reproduces the target geometry.

        Used when a glyph changes derivation kind (unlock/relink): the new
        kind may place components differently, so each transform's (x, y) is
        corrected by the difference between where the component lands and
        where its tagged paths sit in the target. Components are fitted in
        order because each placement depends on the ones before it.

        Args:
            character: Character carrying the new derivation kind
            target: Geometry that must be preserved

        Returns:
            Fitted transforms, or None if generation is not possible
        """
        stroke = self.context.stroke_thickness
        transforms = [character.transform_for(i) for i in range(len(character.components))]
        for index in range(len(transforms)):
            target_bbox = glyph_bbox(target.component_paths(index), stroke)
            if target_bbox is None:
                continue
            candidate = replace(character, composite_transform=tuple(transforms))
            generated = self.generate(candidate)
            if generated is None:
                return None
            placed_bbox = glyph_bbox(generated.component_paths(index), stroke)
            if placed_bbox is None:
                continue
            dx = target_bbox.x - placed_bbox.x
            dy = target_bbox.y - placed_bbox.y
            if dx or dy:
                current = transforms[index]
                transforms[index] = replace(current, x=current.x + dx, y=current.y + dy)
        return tuple(transforms)
