"""Character identity and derivation metadata.

A Character is the identity node of the dependency graph. Its geometry lives
separately in GlyphData, keyed by code point. A derived character names its
components under exactly one derivation kind and may carry one placement
transform per component.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from glyphcascade.exceptions import DerivationError


class GlyphClass(str, Enum):
    """OpenType-style glyph classification."""

    BASE = "base"
    MARK = "mark"
    LIGATURE = "ligature"
    VIRTUAL = "virtual"


class DerivationKind(str, Enum):
    """How a character's geometry is derived from its components.

    - LINK: live copy, regenerated whenever a component changes
    - COMPOSITE: snapshot built once, never updated automatically
    - POSITION: base + mark pair placed by attachment rules
    - KERN: left + right pair placed side by side
    """

    LINK = "link"
    COMPOSITE = "composite"
    POSITION = "position"
    KERN = "kern"


class TransformMode(str, Enum):
    """How a component's transform offset combines with automatic placement."""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"
    TOUCHING = "touching"


@dataclass(frozen=True, slots=True)
class ComponentTransform:
    """Placement adjustment for one component of a derived character.

    Attributes:
        scale: Uniform scale about the component's own bounding-box center
        rotation: Rotation in degrees about the same center
        x: Horizontal offset added after automatic placement
        y: Vertical offset added after automatic placement
        mode: How automatic placement is computed
    """

    scale: float = 1.0
    rotation: float = 0.0
    x: float = 0.0
    y: float = 0.0
    mode: TransformMode = TransformMode.RELATIVE

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ValueError(f"Component scale must be positive, got {self.scale}")

    @property
    def has_shape_change(self) -> bool:
        """Check if the transform scales or rotates the component."""
        return self.scale != 1.0 or self.rotation != 0.0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        data: dict[str, Any] = {
            "scale": self.scale,
            "x": self.x,
            "y": self.y,
            "mode": self.mode.value,
        }
        if self.rotation:
            data["rotation"] = self.rotation
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ComponentTransform":
        """Deserialize from dictionary."""
        return cls(
            scale=data.get("scale", 1.0),
            rotation=data.get("rotation", 0.0),
            x=data.get("x", 0.0),
            y=data.get("y", 0.0),
            mode=TransformMode(data.get("mode", TransformMode.RELATIVE.value)),
        )


IDENTITY_TRANSFORM = ComponentTransform()


def normalize_transforms(config: Any, count: int) -> tuple[ComponentTransform, ...] | None:
    """Normalize a stored composite transform into one entry per component.

    Three syntaxes are accepted:
    - list of objects: ``[{"scale": 1, "x": 0, "y": 0, "mode": "touching"}, ...]``
    - list of lists: ``[[scale, y, "touching"|"absolute"], ...]``
    - flat list: ``[scale, y]`` (applies to every component)

    Args:
        config: Raw transform configuration, or None
        count: Number of components

    Returns:
        Tuple of transforms, or None if no configuration was given

    Raises:
        ValueError: If a scale is not positive
    """
    if config is None:
        return None
    if not isinstance(config, (list, tuple)) or len(config) == 0:
        return None

    first = config[0]
    if isinstance(first, ComponentTransform):
        entries = list(config)
    elif isinstance(first, dict):
        entries = [ComponentTransform.from_dict(entry) for entry in config]
    elif isinstance(first, (list, tuple)):
        entries = []
        for entry in config:
            if "touching" in entry:
                mode = TransformMode.TOUCHING
            elif "absolute" in entry:
                mode = TransformMode.ABSOLUTE
            else:
                mode = TransformMode.RELATIVE
            entries.append(
                ComponentTransform(
                    scale=entry[0] if len(entry) > 0 and _is_number(entry[0]) else 1.0,
                    y=entry[1] if len(entry) > 1 and _is_number(entry[1]) else 0.0,
                    mode=mode,
                )
            )
    elif _is_number(first):
        shared = ComponentTransform(
            scale=config[0],
            y=config[1] if len(config) > 1 and _is_number(config[1]) else 0.0,
        )
        entries = [shared] * count
    else:
        return None

    if len(entries) < count:
        entries.extend([IDENTITY_TRANSFORM] * (count - len(entries)))
    return tuple(entries[:count]) if count else tuple(entries)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class Character:
    """A character definition.

    Exactly one of link/composite/position/kern may be populated. A character
    that was unlocked from a live derivation remembers it in source_link and
    source_link_type so it can be relinked later.

    Attributes:
        name: Stable character name
        unicode: Code point (None for unencoded characters)
        glyph_class: Glyph classification
        link: Components of a live linked copy
        composite: Components of a one-off snapshot
        position: [base, mark] of an automatically positioned pair
        kern: [left, right] of an automatically kerned pair
        composite_transform: One transform per component
        source_link: Components remembered when unlocked
        source_link_type: Derivation kind remembered when unlocked
        gpos: Feature tag when a position pair is rendered through GPOS
        lsb: Left side bearing
        rsb: Right side bearing
        adv_width: Advance width (number or expression)
        is_custom: Added by the user rather than the script definition
        is_pua_assigned: Code point was taken from the Private Use Area
        hidden: Not shown in the character grid
    """

    name: str
    unicode: int | None = None
    glyph_class: GlyphClass | None = None
    link: tuple[str, ...] | None = None
    composite: tuple[str, ...] | None = None
    position: tuple[str, ...] | None = None
    kern: tuple[str, ...] | None = None
    composite_transform: tuple[ComponentTransform, ...] | None = None
    source_link: tuple[str, ...] | None = None
    source_link_type: DerivationKind | None = None
    gpos: str | None = None
    lsb: float | None = None
    rsb: float | None = None
    adv_width: float | str | None = None
    is_custom: bool = False
    is_pua_assigned: bool = False
    hidden: bool = False
    extra: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def derivation_kind(self) -> DerivationKind | None:
        """Get the populated derivation kind.

        Returns:
            The derivation kind, or None for a directly drawn character

        Raises:
            DerivationError: If more than one derivation list is populated
        """
        populated = [
            kind
            for kind in DerivationKind
            if getattr(self, kind.value)
        ]
        if len(populated) > 1:
            kinds = ", ".join(k.value for k in populated)
            raise DerivationError(self.name, f"multiple derivation kinds set ({kinds})")
        return populated[0] if populated else None

    @property
    def components(self) -> tuple[str, ...]:
        """Get the component names of the populated derivation kind."""
        kind = self.derivation_kind
        if kind is None:
            return ()
        return tuple(getattr(self, kind.value))

    def is_derived(self) -> bool:
        """Check if the character is built from components."""
        return self.derivation_kind is not None

    def transform_for(self, index: int) -> ComponentTransform:
        """Get the transform of a component, defaulting to identity."""
        if self.composite_transform is None or index >= len(self.composite_transform):
            return IDENTITY_TRANSFORM
        return self.composite_transform[index]

    def with_derivation(
        self,
        kind: DerivationKind | None,
        components: tuple[str, ...] | None,
        **changes: Any,
    ) -> "Character":
        """Return a copy with the derivation replaced.

        Every derivation list is cleared before the new one is set.

        Args:
            kind: New derivation kind, or None to make the character free-standing
            components: Component names for the new kind
            **changes: Other fields to replace

        Returns:
            New Character instance
        """
        cleared: dict[str, Any] = {k.value: None for k in DerivationKind}
        if kind is not None:
            cleared[kind.value] = tuple(components or ())
        cleared.update(changes)
        return replace(self, **cleared)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary (camelCase keys as stored in projects)."""
        data: dict[str, Any] = dict(self.extra)
        data["name"] = self.name
        if self.unicode is not None:
            data["unicode"] = self.unicode
        if self.glyph_class is not None:
            data["glyphClass"] = self.glyph_class.value
        for kind in DerivationKind:
            value = getattr(self, kind.value)
            if value is not None:
                data[kind.value] = list(value)
        if self.composite_transform is not None:
            data["compositeTransform"] = [t.to_dict() for t in self.composite_transform]
        if self.source_link is not None:
            data["sourceLink"] = list(self.source_link)
        if self.source_link_type is not None:
            data["sourceLinkType"] = self.source_link_type.value
        optional = {
            "gpos": self.gpos,
            "lsb": self.lsb,
            "rsb": self.rsb,
            "advWidth": self.adv_width,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.is_custom:
            data["isCustom"] = True
        if self.is_pua_assigned:
            data["isPuaAssigned"] = True
        if self.hidden:
            data["hidden"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Character":
        """Deserialize from dictionary.

        Unknown keys are preserved in ``extra`` so they survive a round trip.

        Raises:
            DerivationError: If a composite transform has a non-positive scale
        """
        known = {
            "name", "unicode", "glyphClass", "link", "composite", "position", "kern",
            "compositeTransform", "sourceLink", "sourceLinkType", "gpos", "lsb", "rsb",
            "advWidth", "isCustom", "isPuaAssigned", "hidden",
        }
        name = data["name"]

        def names(key: str) -> tuple[str, ...] | None:
            value = data.get(key)
            return tuple(value) if value is not None else None

        lists = {kind.value: names(kind.value) for kind in DerivationKind}
        count = max((len(v) for v in lists.values() if v), default=0)
        try:
            transforms = normalize_transforms(data.get("compositeTransform"), count)
        except ValueError as e:
            raise DerivationError(name, str(e)) from e

        source_type = data.get("sourceLinkType")
        glyph_class = data.get("glyphClass")
        return cls(
            name=name,
            unicode=data.get("unicode"),
            glyph_class=GlyphClass(glyph_class) if glyph_class else None,
            link=lists["link"],
            composite=lists["composite"],
            position=lists["position"],
            kern=lists["kern"],
            composite_transform=transforms,
            source_link=names("sourceLink"),
            source_link_type=DerivationKind(source_type) if source_type else None,
            gpos=data.get("gpos"),
            lsb=data.get("lsb"),
            rsb=data.get("rsb"),
            adv_width=data.get("advWidth"),
            is_custom=data.get("isCustom", False),
            is_pua_assigned=data.get("isPuaAssigned", False),
            hidden=data.get("hidden", False),
            extra={k: v for k, v in data.items() if k not in known},
        )
