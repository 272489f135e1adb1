# src/pathtrace/core/types.py
#!/usr/bin/env python3
"""
Shared types for the trace engine.

Everything that ends up inside a Trace is frozen: snapshots hold frozensets,
tuples and read-only mapping views over private copies, so nothing the engine
does after emission can reach back into an earlier step.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from math import isfinite
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

Coord = Tuple[float, float]  # (x, y)

ALGORITHMS = ("bfs", "dfs", "dijkstra", "astar")
HEURISTICS = ("manhattan", "euclidean")

PHASES = ("init", "select", "expand", "relax", "enqueue", "found", "exhausted")

FRONTIER_QUEUE = "queue"
FRONTIER_STACK = "stack"
FRONTIER_MINHEAP = "minheap"


@dataclass(frozen=True)
class RunOptions:
    algorithm: str = "astar"
    heuristic: str = "manhattan"
    heuristic_weight: float = 1.0

    def __post_init__(self):
        if self.algorithm not in ALGORITHMS:
            raise ValueError(f"Unknown algorithm {self.algorithm!r}; expected one of {ALGORITHMS}")
        w = self.heuristic_weight
        if not isinstance(w, (int, float)) or not isfinite(w) or w < 0:
            raise ValueError(f"heuristic_weight must be a finite number >= 0, got {w!r}")


@dataclass(frozen=True)
class FrontierItem:
    """
    One candidate on the frontier.
    - BFS/DFS fill `depth` only
    - Dijkstra fills g (priority = g)
    - A* fills g, h, f (priority = f = g + weight*h)
    """
    key: str
    at: Coord
    g: Optional[float] = None
    h: Optional[float] = None
    f: Optional[float] = None
    depth: Optional[int] = None
    priority: Optional[float] = None


@dataclass(frozen=True)
class SelectionReason:
    kind: str                      # "fifo" | "lifo" | "min" | "goal"
    metric: Optional[str] = None   # "g" | "f" when kind == "min"
    value: Optional[float] = None


@dataclass(frozen=True)
class RejectionReason:
    candidate: FrontierItem
    chosen: FrontierItem
    metric: str                    # "g" | "f" | "depth"
    candidate_value: float
    chosen_value: float


@dataclass(frozen=True)
class RelaxationEvent:
    from_key: str
    to_key: str
    old_g: Optional[float]         # None => first discovery
    new_g: float
    improved: bool = True


@dataclass(frozen=True)
class StepSnapshot:
    index: int
    phase: str
    current_key: Optional[str]
    frontier_kind: str
    frontier: Tuple[FrontierItem, ...]
    visited: FrozenSet[str]
    closed: FrozenSet[str]
    came_from: Mapping[str, str]
    g_score: Mapping[str, float]
    current: Optional[Coord] = None
    selected: Optional[FrontierItem] = None
    selection_reason: Optional[SelectionReason] = None
    why_not: Optional[Tuple[RejectionReason, ...]] = None
    relaxation: Optional[RelaxationEvent] = None
    path: Optional[Tuple[Coord, ...]] = None
    warnings: Optional[Tuple[str, ...]] = None


def freeze_map(d: Dict) -> Mapping:
    """Read-only view over a private copy of `d`."""
    return MappingProxyType(dict(d))


@dataclass(frozen=True)
class TraceMetrics:
    explored: int = 0
    relaxations: int = 0
    peak_frontier: int = 0
    peak_closed: int = 0
    runtime_steps: int = 0


@dataclass(frozen=True)
class Trace:
    options: RunOptions
    steps: Tuple[StepSnapshot, ...]
    found: bool
    path: Tuple[Coord, ...] = ()
    metrics: TraceMetrics = field(default_factory=TraceMetrics)
    path_cost: Optional[float] = None  # summed edge cost of `path`
    cost_mode: str = "unit"            # cost mode of the adapter that produced it
