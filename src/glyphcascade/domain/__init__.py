"""Domain models for glyphcascade.

This module contains the core domain models representing characters, their
drawn geometry and the rule tables used to place components. All models are:

- Immutable where possible (using frozen dataclasses)
- Serializable to the camelCase dictionaries stored in project files
- Independent of any rendering or font-encoding library

Key classes:
- Point, Segment, Path: Drawn geometry
- GlyphData: The ordered paths of one character
- Character: Identity and derivation metadata
- ComponentTransform: Per-component placement adjustment
- RuleSet: Attachment and positioning rules
"""

from glyphcascade.domain.character import (
    IDENTITY_TRANSFORM,
    Character,
    ComponentTransform,
    DerivationKind,
    GlyphClass,
    TransformMode,
    normalize_transforms,
)
from glyphcascade.domain.path import (
    ORIGIN,
    BoundingBox,
    GlyphData,
    Path,
    PathType,
    Point,
    Segment,
    is_glyph_drawn,
)
from glyphcascade.domain.rules import (
    DEFAULT_ATTACHMENT,
    AttachmentClass,
    AttachmentPoint,
    AttachmentRule,
    MarkAttachmentRules,
    Movement,
    PositioningRule,
    RuleSet,
)

__all__: list[str] = [
    # Enums
    "AttachmentPoint",
    "DerivationKind",
    "GlyphClass",
    "Movement",
    "PathType",
    "TransformMode",
    # Geometry
    "ORIGIN",
    "BoundingBox",
    "GlyphData",
    "Path",
    "Point",
    "Segment",
    "is_glyph_drawn",
    # Characters
    "IDENTITY_TRANSFORM",
    "Character",
    "ComponentTransform",
    "normalize_transforms",
    # Rules
    "DEFAULT_ATTACHMENT",
    "AttachmentClass",
    "AttachmentRule",
    "MarkAttachmentRules",
    "PositioningRule",
    "RuleSet",
]
