"""Dependency index between component glyphs and the glyphs derived from them.

The index is derived state. It can always be rebuilt from the character set,
and it is patched incrementally when a single character's derivation changes.
Only direct (one-hop) relations are answered here; walking further is left to
the cascade.
"""

from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

import structlog

from glyphcascade.domain import Character
from glyphcascade.exceptions import DerivationError

logger = structlog.get_logger(__name__)


@dataclass
class DependencyGraph:
    """Adjacency between code points.

    Attributes:
        _used_by: component -> dependents naming it
        _made_of: dependent -> components it names
    """

    _used_by: dict[int, set[int]] = field(default_factory=dict)
    _made_of: dict[int, set[int]] = field(default_factory=dict)

    @classmethod
    def from_characters(
        cls,
        characters: Iterable[Character],
        chars_by_name: Mapping[str, Character] | None = None,
    ) -> "DependencyGraph":
        """Build a graph from a full character set."""
        graph = cls()
        graph.rebuild(characters, chars_by_name)
        return graph

    def rebuild(
        self,
        characters: Iterable[Character],
        chars_by_name: Mapping[str, Character] | None = None,
    ) -> None:
        """Reconstruct every edge from the character set.

        Edges are created for all four derivation kinds. Unknown or unencoded
        component names are ignored, as are self references. This never
        raises; inconsistent characters are logged and skipped.

        Args:
            characters: All characters
            chars_by_name: Name lookup (built from characters if omitted)
        """
        characters = list(characters)
        if chars_by_name is None:
            chars_by_name = {c.name: c for c in characters}

        self._used_by.clear()
        self._made_of.clear()
        for char in characters:
            if char.unicode is None:
                continue
            try:
                components = char.components
            except DerivationError as e:
                logger.warning("Skipping inconsistent character", glyph=char.name, error=str(e))
                continue
            for name in components:
                component = chars_by_name.get(name)
                if component is None or component.unicode is None:
                    continue
                if component.unicode == char.unicode:
                    logger.warning("Skipping self reference", glyph=char.name)
                    continue
                self.add_edge(component.unicode, char.unicode)

        logger.debug(
            "Dependency graph rebuilt",
            components=len(self._used_by),
            dependents=len(self._made_of),
        )

    def add_edge(self, component: int, dependent: int) -> None:
        """Record that ``dependent`` is derived from ``component``.

        Raises:
            ValueError: If both ends are the same code point
        """
        if component == dependent:
            raise ValueError(f"Self edge on U+{component:04X}")
        self._used_by.setdefault(component, set()).add(dependent)
        self._made_of.setdefault(dependent, set()).add(component)

    def remove_edge(self, component: int, dependent: int) -> None:
        """Remove an edge if present."""
        dependents = self._used_by.get(component)
        if dependents is not None:
            dependents.discard(dependent)
            if not dependents:
                del self._used_by[component]
        components = self._made_of.get(dependent)
        if components is not None:
            components.discard(component)
            if not components:
                del self._made_of[dependent]

    def on_link_changed(
        self,
        unicode: int,
        old_components: Iterable[int],
        new_components: Iterable[int],
    ) -> None:
        """Update edges after a character's component list changed.

        Args:
            unicode: The dependent whose derivation changed
            old_components: Code points it referenced before
            new_components: Code points it references now
        """
        old = set(old_components)
        new = {c for c in new_components if c != unicode}
        for component in old - new:
            self.remove_edge(component, unicode)
        for component in new - old:
            self.add_edge(component, unicode)

    def dependents_of(self, unicode: int) -> frozenset[int]:
        """Direct dependents of a code point."""
        return frozenset(self._used_by.get(unicode, ()))

    def components_of(self, unicode: int) -> frozenset[int]:
        """Direct components of a code point."""
        return frozenset(self._made_of.get(unicode, ()))

    def remove_node(self, unicode: int) -> None:
        """Remove every edge touching a code point."""
        for dependent in list(self._used_by.get(unicode, ())):
            self.remove_edge(unicode, dependent)
        for component in list(self._made_of.get(unicode, ())):
            self.remove_edge(component, unicode)

    def transitive_dependents(self, unicode: int) -> list[int]:
        """All code points reachable through dependents, in breadth-first order."""
        seen = {unicode}
        order: list[int] = []
        queue = deque([unicode])
        while queue:
            current = queue.popleft()
            for dependent in sorted(self._used_by.get(current, ())):
                if dependent not in seen:
                    seen.add(dependent)
                    order.append(dependent)
                    queue.append(dependent)
        return order

    def would_create_cycle(self, unicode: int, components: Iterable[int]) -> list[int] | None:
        """Check if deriving ``unicode`` from ``components`` closes a cycle.

        Returns:
            The cycle as a list of code points starting and ending at
            ``unicode``, or None
        """
        for component in components:
            if component == unicode:
                return [unicode, unicode]
            path = self._path_between(unicode, component)
            if path is not None:
                return path + [unicode]
        return None

    def _path_between(self, start: int, goal: int) -> list[int] | None:
        parents: dict[int, int | None] = {start: None}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if current == goal:
                path = [current]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])  # type: ignore[arg-type]
                return list(reversed(path))
            for dependent in sorted(self._used_by.get(current, ())):
                if dependent not in parents:
                    parents[dependent] = current
                    queue.append(dependent)
        return None

    def find_cycle(self) -> list[int] | None:
        """Find any cycle in the graph.

        Returns:
            A cycle as a list of code points whose first and last entries are
            equal, or None if the graph is acyclic
        """
        white, grey, black = 0, 1, 2
        color: dict[int, int] = {}
        nodes = sorted(set(self._used_by) | set(self._made_of))

        for root in nodes:
            if color.get(root, white) != white:
                continue
            stack: list[tuple[int, deque[int]]] = [
                (root, deque(sorted(self._used_by.get(root, ()))))
            ]
            trail = [root]
            color[root] = grey
            while stack:
                node, pending = stack[-1]
                if not pending:
                    color[node] = black
                    stack.pop()
                    trail.pop()
                    continue
                nxt = pending.popleft()
                state = color.get(nxt, white)
                if state == grey:
                    return trail[trail.index(nxt):] + [nxt]
                if state == white:
                    color[nxt] = grey
                    trail.append(nxt)
                    stack.append((nxt, deque(sorted(self._used_by.get(nxt, ())))))
        return None

    def copy(self) -> "DependencyGraph":
        """Deep copy of the adjacency sets."""
        return DependencyGraph(
            _used_by={k: set(v) for k, v in self._used_by.items()},
            _made_of={k: set(v) for k, v in self._made_of.items()},
        )

    def to_dict(self) -> dict[int, list[int]]:
        """Component -> sorted dependents."""
        return {k: sorted(v) for k, v in sorted(self._used_by.items())}

    def __len__(self) -> int:
        return sum(len(v) for v in self._used_by.values())
