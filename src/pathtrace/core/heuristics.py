# src/pathtrace/core/heuristics.py
#!/usr/bin/env python3
from math import sqrt
from typing import Callable, Dict

from pathtrace.core.types import Coord

Heuristic = Callable[[Coord, Coord], float]


def manhattan(a: Coord, b: Coord) -> float:
    (ax, ay), (bx, by) = a, b
    return abs(ax - bx) + abs(ay - by)


def euclidean(a: Coord, b: Coord) -> float:
    (ax, ay), (bx, by) = a, b
    dx = ax - bx
    dy = ay - by
    return sqrt(dx * dx + dy * dy)


HEURISTIC_FNS: Dict[str, Heuristic] = {
    "manhattan": manhattan,
    "euclidean": euclidean,
}


def heuristic_fn(heuristic_id: str) -> Heuristic:
    """Look up by id; anything unknown gets manhattan."""
    return HEURISTIC_FNS.get(heuristic_id, manhattan)
