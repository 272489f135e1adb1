# src/pathtrace/core/environment.py
#!/usr/bin/env python3
"""
Environment descriptors and the adapters the engine talks to.

Two topologies, one interface:
- GridEnvironment: implicit 4-connected grid, keys "x,y", unit edge cost
- GraphEnvironment: explicit node/edge lists, arbitrary keys, weighted edges

The engine only ever sees an EnvironmentAdapter:
  coordinate(key) -> Coord, neighbors(key) -> [(key, cost)], cost_mode, size_basis
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from pathtrace.core.types import Coord

logger = logging.getLogger(__name__)

DEFAULT_COORD: Coord = (0, 0)

COST_UNIT = "unit"
COST_WEIGHTED = "weighted"

Neighbor = Tuple[str, float]  # (key, edge cost)


# -------------------- grid keys --------------------

def key_of(c: Coord) -> str:
    x, y = c
    return f"{int(x)},{int(y)}"


def parse_key(key: str) -> Optional[Coord]:
    """Parse "x,y"; None when the key is not a cell key."""
    try:
        xs, ys = key.split(",")
        return (int(xs), int(ys))
    except (AttributeError, ValueError):
        return None


def coord_of(key: str) -> Coord:
    """Parse "x,y". Anything unparsable maps to DEFAULT_COORD."""
    at = parse_key(key)
    return DEFAULT_COORD if at is None else at


# -------------------- descriptors --------------------

@dataclass(frozen=True)
class GridEnvironment:
    width: int
    height: int
    walls: FrozenSet[str] = field(default_factory=frozenset)  # "x,y" keys

    def in_bounds(self, c: Coord) -> bool:
        x, y = c
        return 0 <= x < self.width and 0 <= y < self.height

    def is_wall(self, c: Coord) -> bool:
        return key_of(c) in self.walls


@dataclass(frozen=True)
class GraphNode:
    id: str
    at: Coord
    label: Optional[str] = None


@dataclass(frozen=True)
class GraphEdge:
    from_id: str
    to_id: str
    cost: float


@dataclass(frozen=True)
class GraphEnvironment:
    directed: bool
    nodes: Tuple[GraphNode, ...]
    edges: Tuple[GraphEdge, ...]


def empty_grid(width: int, height: int) -> GridEnvironment:
    return GridEnvironment(width, height, frozenset())


def in_bounds(grid: GridEnvironment, c: Coord) -> bool:
    return grid.in_bounds(c)


def is_wall(grid: GridEnvironment, c: Coord) -> bool:
    return grid.is_wall(c)


def set_wall(grid: GridEnvironment, c: Coord, on: bool) -> GridEnvironment:
    """Return a new grid with the wall at `c` switched on/off."""
    walls = set(grid.walls)
    if on:
        walls.add(key_of(c))
    else:
        walls.discard(key_of(c))
    return replace(grid, walls=frozenset(walls))


# -------------------- adapters --------------------

class EnvironmentAdapter:
    """
    What the engine needs from a topology. Subclass this for custom ones.
    - size_basis: cell count / node count, feeds the iteration cap
    """
    cost_mode: str = COST_UNIT
    size_basis: int = 0

    def coordinate(self, key: str) -> Coord:
        raise NotImplementedError

    def neighbors(self, key: str) -> List[Neighbor]:
        raise NotImplementedError


class GridAdapter(EnvironmentAdapter):
    cost_mode = COST_UNIT

    def __init__(self, grid: GridEnvironment):
        self.grid = grid
        self.size_basis = grid.width * grid.height

    def coordinate(self, key: str) -> Coord:
        return coord_of(key)

    def neighbors(self, key: str) -> List[Neighbor]:
        at = parse_key(key)
        if at is None or not self.grid.in_bounds(at):
            return []
        x, y = at
        candidates: List[Coord] = [
            (x + 1, y),
            (x - 1, y),
            (x, y + 1),
            (x, y - 1),
        ]
        out: List[Neighbor] = []
        for n in candidates:
            if self.grid.in_bounds(n) and not self.grid.is_wall(n):
                out.append((key_of(n), 1))
        return out


class GraphAdapter(EnvironmentAdapter):
    cost_mode = COST_WEIGHTED

    def __init__(self, graph: GraphEnvironment):
        self.graph = graph
        self.size_basis = len(graph.nodes)
        self._at: Dict[str, Coord] = {n.id: n.at for n in graph.nodes}
        self._adj: Dict[str, List[Neighbor]] = {}
        for e in graph.edges:
            if e.from_id not in self._at or e.to_id not in self._at:
                logger.debug(f"Dropping edge {e.from_id!r} -> {e.to_id!r}: endpoint not in node set")
                continue
            self._adj.setdefault(e.from_id, []).append((e.to_id, e.cost))
            if not graph.directed:
                self._adj.setdefault(e.to_id, []).append((e.from_id, e.cost))

    def coordinate(self, key: str) -> Coord:
        return self._at.get(key, DEFAULT_COORD)

    def neighbors(self, key: str) -> List[Neighbor]:
        return list(self._adj.get(key, ()))


def adapter_for(environment) -> EnvironmentAdapter:
    if isinstance(environment, EnvironmentAdapter):
        return environment
    if isinstance(environment, GridEnvironment):
        return GridAdapter(environment)
    if isinstance(environment, GraphEnvironment):
        return GraphAdapter(environment)
    raise ValueError(f"Unsupported environment type: {type(environment).__name__}")


def grid_from_rows(rows: Iterable[str], wall: str = "#") -> GridEnvironment:
    """Build a grid from ASCII rows, e.g. ["..#", "..."]."""
    rows = list(rows)
    walls = frozenset(
        f"{x},{y}"
        for y, row in enumerate(rows)
        for x, ch in enumerate(row)
        if ch == wall
    )
    return GridEnvironment(len(rows[0]) if rows else 0, len(rows), walls)
