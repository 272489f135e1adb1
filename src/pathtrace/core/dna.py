# src/pathtrace/core/dna.py
#!/usr/bin/env python3
"""
Algorithm "DNA": a compact, read-only summary of a finished Trace
(how wide/deep it searched, what it cost, what it warned about).
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from pathtrace.core.environment import COST_UNIT
from pathtrace.core.types import Trace

FINGERPRINTS: Dict[str, Tuple[str, str]] = {
    "bfs": ("BFS: explores level-by-level (wide wavefront).",
            "Safe and optimal on unweighted grids, but can be memory-intensive."),
    "dfs": ("DFS: dives deep along one branch (depth-first).",
            "Often fast to find *a* path, but not reliable for shortest paths."),
    "dijkstra": ("Dijkstra: expands by lowest known cost g(n).",
                 "Optimal, but can explore many nodes when the goal is far."),
    "astar": ("A*: expands by lowest f(n)=g(n)+h(n) (goal-directed).",
              "Efficient with a good heuristic; can be suboptimal with bad/overweighted heuristics."),
}


@dataclass(frozen=True)
class AlgorithmDNA:
    algorithm: str
    fingerprint: Tuple[str, ...]
    explored: int
    path_length: int
    path_cost: Optional[float]
    peak_frontier: int
    peak_closed: int
    optimality: str          # "optimal" | "not-guaranteed"
    exploration_style: str   # "wide" | "deep" | "balanced"
    tradeoff: str            # "speed" | "memory" | "accuracy" | "balanced"
    notes: Tuple[str, ...]


def path_cost(trace: Trace) -> Optional[float]:
    """Summed edge cost of the found path; None if not found."""
    if not trace.found:
        return None
    return trace.path_cost


def exploration_style(trace: Trace) -> str:
    depths: List[int] = [s.selected.depth for s in trace.steps
                         if s.selected is not None and s.selected.depth is not None]
    sizes = [len(s.frontier) for s in trace.steps]
    avg_depth = sum(depths) / len(depths) if depths else 0
    avg_frontier = sum(sizes) / len(sizes) if sizes else 0
    # wide searches keep a big frontier; deep ones push depth faster than frontier
    if avg_frontier > max(8, avg_depth * 2):
        return "wide"
    if avg_depth > max(8, avg_frontier):
        return "deep"
    return "balanced"


def optimality(trace: Trace) -> str:
    algo = trace.options.algorithm
    if not trace.found:
        return "not-guaranteed"
    if algo == "dijkstra":
        return "optimal"
    if algo == "bfs" and trace.cost_mode == COST_UNIT:
        return "optimal"
    if algo == "astar" and trace.options.heuristic_weight <= 1:
        return "optimal"
    return "not-guaranteed"


def tradeoff(trace: Trace) -> str:
    algo = trace.options.algorithm
    if algo == "bfs":
        return "memory"
    if algo == "dfs":
        return "speed"
    if algo == "dijkstra":
        return "accuracy"
    if algo == "astar" and trace.options.heuristic_weight > 1:
        return "speed"
    return "balanced"


def compute_algorithm_dna(trace: Trace) -> AlgorithmDNA:
    notes: List[str] = []
    for s in trace.steps:
        for w in s.warnings or ():
            if w not in notes:
                notes.append(w)

    algo = trace.options.algorithm
    return AlgorithmDNA(
        algorithm=algo,
        fingerprint=FINGERPRINTS.get(algo, ()),
        explored=trace.metrics.explored,
        path_length=len(trace.path),
        path_cost=path_cost(trace),
        peak_frontier=trace.metrics.peak_frontier,
        peak_closed=trace.metrics.peak_closed,
        optimality=optimality(trace),
        exploration_style=exploration_style(trace),
        tradeoff=tradeoff(trace),
        notes=tuple(notes),
    )
