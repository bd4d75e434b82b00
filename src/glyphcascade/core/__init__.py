"""Core algorithms for glyphcascade.

This module contains the core algorithms for:

- Geometry operations (bounding boxes, rotate/scale/flip about a pivot)
- Component placement (attachment rules, side-by-side layout)
- Composite generation (full rebuild of derived glyphs)
- Smart patching (in-place update of one component)
- Dependency indexing and cascade propagation
- Session operations (save, delete, unlock, relink)

The geometry, placement, generation and patching services are pure: they
read their inputs and return new values. Only ProjectState and GlyphSession
hold mutable state.

Key functions:
- glyph_bbox: Accurate bounding box over stroked and outlined paths
- build_transform: Pivot transform in fixed translate/scale/rotate order
- transform_paths: Rotate, scale and flip paths about their center
- resolve_attachment_rule: Attachment rule lookup with group expansion
- update_component_in_paths: Patch one component of a derived glyph

Key classes:
- CompositeGenerator: Builds derived glyph geometry from components
- SmartPatcher: Patches one component in place
- DependencyGraph: Component -> dependents index
- CascadeScheduler: Runs propagation tasks in batches
- ProjectState: Owned project state, changed through commands
- GlyphSession: Editing operations over a project
"""

from glyphcascade.core.cascade import (
    CascadeResult,
    CascadeScheduler,
    CascadeTask,
    should_rebake,
)
from glyphcascade.core.composite import (
    CompositeGenerator,
    ComponentLayout,
    LayoutContext,
    component_group_id,
    component_path_id,
)
from glyphcascade.core.geometry import (
    apply_transform,
    build_transform,
    glyph_bbox,
    transform_paths,
    translate_paths,
    vec_add,
    vec_scale,
    vec_sub,
)
from glyphcascade.core.graph import DependencyGraph
from glyphcascade.core.notifications import (
    CollectingNotificationSink,
    LoggingNotificationSink,
    NotificationSink,
)
from glyphcascade.core.patcher import SmartPatcher, update_component_in_paths
from glyphcascade.core.placement import (
    attachment_point_coords,
    expand_members,
    is_char_in_list,
    resolve_attachment_rule,
)
from glyphcascade.core.session import GlyphSession, UndoToken
from glyphcascade.core.state import ProjectState

__all__ = [
    # Cascade
    "CascadeResult",
    "CascadeScheduler",
    "CascadeTask",
    "should_rebake",
    # Composite generation
    "ComponentLayout",
    "CompositeGenerator",
    "LayoutContext",
    "component_group_id",
    "component_path_id",
    # Geometry functions
    "apply_transform",
    "build_transform",
    "glyph_bbox",
    "transform_paths",
    "translate_paths",
    "vec_add",
    "vec_scale",
    "vec_sub",
    # Graph
    "DependencyGraph",
    # Notifications
    "CollectingNotificationSink",
    "LoggingNotificationSink",
    "NotificationSink",
    # Patching
    "SmartPatcher",
    "update_component_in_paths",
    # Placement
    "attachment_point_coords",
    "expand_members",
    "is_char_in_list",
    "resolve_attachment_rule",
    # Session
    "GlyphSession",
    "ProjectState",
    "UndoToken",
]
