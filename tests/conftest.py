"""Shared fixtures: a small project with drawn and derived glyphs.

Scenario projects use zero stroke thickness and zero default side bearings
so expected coordinates can be read straight off the rectangles.
"""

import pytest

from glyphcascade.config import FontMetrics, GlyphCascadeSettings, RenderSettings
from glyphcascade.core import CompositeGenerator, GlyphSession, ProjectState
from glyphcascade.core.notifications import CollectingNotificationSink
from glyphcascade.domain import Character, GlyphClass, GlyphData, Path, PathType, Point

A, B, C, D, E, F = 0x41, 0x42, 0x43, 0x44, 0x45, 0x46
MARK = 0x301
AACUTE = 0xC1
AE_KERN = 0xC6
Z = 0x5A


def rect_path(path_id: str, x0: float, y0: float, x1: float, y1: float) -> Path:
    """Rectangle drawn as a line path through its corners."""
    return Path(
        id=path_id,
        type=PathType.LINE,
        points=(Point(x0, y0), Point(x1, y0), Point(x1, y1), Point(x0, y1)),
    )


def rect_glyph(path_id: str, x0: float, y0: float, x1: float, y1: float) -> GlyphData:
    return GlyphData(paths=(rect_path(path_id, x0, y0, x1, y1),))


@pytest.fixture
def settings() -> GlyphCascadeSettings:
    """Settings with zero stroke and zero default bearings."""
    return GlyphCascadeSettings(
        render=RenderSettings(stroke_thickness=0),
        metrics=FontMetrics(default_lsb=0, default_rsb=0),
    )


@pytest.fixture
def characters() -> list[Character]:
    return [
        Character(name="A", unicode=A, glyph_class=GlyphClass.BASE),
        Character(name="E", unicode=E, glyph_class=GlyphClass.BASE),
        Character(name="acute", unicode=MARK, glyph_class=GlyphClass.MARK),
        Character(name="Z", unicode=Z),
        Character(name="B", unicode=B, link=("A",)),
        Character(name="C", unicode=C, link=("B",)),
        Character(name="D", unicode=D, link=("A", "E")),
        Character(name="F", unicode=F, composite=("A",)),
        Character(name="Aacute", unicode=AACUTE, position=("A", "acute")),
        Character(name="AE", unicode=AE_KERN, kern=("A", "E")),
    ]


@pytest.fixture
def project(settings, characters) -> ProjectState:
    """Project with drawn A, E and acute and every derived glyph generated."""
    state = ProjectState(
        characters={c.name: c for c in characters},
        glyph_data={
            A: rect_glyph("a", 0, 0, 100, 100),
            E: rect_glyph("e", 0, 0, 50, 50),
            MARK: rect_glyph("m", 0, 0, 20, 10),
        },
        kerning={(A, E): -10.0},
        settings=settings,
        character_sets={"Latin": ["A", "B", "C", "D", "E", "F", "Z"], "Marks": ["acute"]},
    )
    for name in ("B", "C", "D", "F", "Aacute", "AE"):
        char = state.characters[name]
        data = CompositeGenerator(state.layout_context()).generate(char)
        assert data is not None
        state.glyph_data[char.unicode] = data
    return state


@pytest.fixture
def sink() -> CollectingNotificationSink:
    return CollectingNotificationSink()


@pytest.fixture
def session(project, sink) -> GlyphSession:
    return GlyphSession(project, sink=sink)
