"""Project I/O for glyphcascade.

This module handles:

- Loading and saving JSON project snapshots
- Drawing glyphs into fontTools pens
- Importing glyph outlines from TTF/OTF fonts
"""

from glyphcascade.io.pens import (
    FontGlyphImporter,
    draw_glyph_data,
    font_to_canvas,
    glyph_data_from_recording,
    recording_to_segment_groups,
)
from glyphcascade.io.project import (
    ProjectReader,
    ProjectWriter,
    project_from_dict,
    project_to_dict,
)

__all__ = [
    # Pens
    "FontGlyphImporter",
    "draw_glyph_data",
    "font_to_canvas",
    "glyph_data_from_recording",
    "recording_to_segment_groups",
    # Projects
    "ProjectReader",
    "ProjectWriter",
    "project_from_dict",
    "project_to_dict",
]
