"""Glyphcascade - keep derived glyphs consistent with the glyphs they are built from.

Glyphcascade maintains the dependency graph between drawn glyphs and the glyphs
derived from them (linked copies, composites, positioned mark pairs and kerned
pairs). A single edit to a component glyph is propagated breadth-first through
the graph, patching each dependent in place where possible and regenerating it
from its components otherwise.

Example:
    $ glyphcascade propagate project.json A

This re-bakes every glyph linked to "A" and writes project-updated.json.
"""

__version__ = "0.1.0"
__author__ = "Dimosthenis Kaponis"

__all__ = ["__author__", "__version__"]
