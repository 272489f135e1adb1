# src/pathtrace/core/strategies.py
#!/usr/bin/env python3
"""
Search strategies = frontier discipline + item construction + selection rule.

The engine is generic over `Strategy`; each algorithm is one small subclass
registered in STRATEGIES. A new algorithm needs only a new entry here.

Frontiers wrap exactly one container each:
- QueueFrontier  (deque, FIFO)   -> BFS
- StackFrontier  (list, LIFO)    -> DFS
- HeapFrontier   (MinHeap)       -> Dijkstra / A*
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

from pathtrace.core.heap import HeapNode, MinHeap
from pathtrace.core.types import (
    FRONTIER_MINHEAP, FRONTIER_QUEUE, FRONTIER_STACK,
    Coord, FrontierItem, SelectionReason,
)


# -------------------- frontiers --------------------

class QueueFrontier:
    kind = FRONTIER_QUEUE

    def __init__(self):
        self._q: Deque[FrontierItem] = deque()

    def __len__(self) -> int:
        return len(self._q)

    def push(self, item: FrontierItem) -> None:
        self._q.append(item)

    def pop(self) -> Optional[FrontierItem]:
        return self._q.popleft() if self._q else None

    def items(self) -> List[FrontierItem]:
        return list(self._q)


class StackFrontier:
    kind = FRONTIER_STACK

    def __init__(self):
        self._s: List[FrontierItem] = []

    def __len__(self) -> int:
        return len(self._s)

    def push(self, item: FrontierItem) -> None:
        self._s.append(item)

    def pop(self) -> Optional[FrontierItem]:
        return self._s.pop() if self._s else None

    def items(self) -> List[FrontierItem]:
        return list(self._s)


class HeapFrontier:
    kind = FRONTIER_MINHEAP

    def __init__(self):
        self._heap = MinHeap()

    def __len__(self) -> int:
        return len(self._heap)

    def push(self, item: FrontierItem) -> None:
        priority = item.priority if item.priority is not None else 0
        self._heap.push(HeapNode(id=item.key, value=item, priority=priority))

    def pop(self) -> Optional[FrontierItem]:
        node = self._heap.pop()
        return node.value if node is not None else None

    def items(self) -> List[FrontierItem]:
        return [n.value for n in self._heap.to_list()]


# -------------------- strategies --------------------

@dataclass(frozen=True)
class Strategy:
    algorithm: str
    frontier_kind: str
    cost_aware: bool               # relax by edge cost (True) or discover-once (False)
    why_not_metric: Optional[str]  # None => no why-not analysis

    def new_frontier(self):
        if self.frontier_kind == FRONTIER_QUEUE:
            return QueueFrontier()
        if self.frontier_kind == FRONTIER_STACK:
            return StackFrontier()
        return HeapFrontier()

    def make_item(self, key: str, at: Coord, g: float, h: float, depth: int,
                  weight: float) -> FrontierItem:
        raise NotImplementedError

    def selection_reason(self, item: FrontierItem) -> SelectionReason:
        raise NotImplementedError


class BreadthFirst(Strategy):
    def make_item(self, key, at, g, h, depth, weight):
        return FrontierItem(key=key, at=at, depth=depth)

    def selection_reason(self, item):
        return SelectionReason(kind="fifo")


class DepthFirst(Strategy):
    def make_item(self, key, at, g, h, depth, weight):
        return FrontierItem(key=key, at=at, depth=depth)

    def selection_reason(self, item):
        return SelectionReason(kind="lifo")


class Dijkstra(Strategy):
    def make_item(self, key, at, g, h, depth, weight):
        return FrontierItem(key=key, at=at, g=g, priority=g)

    def selection_reason(self, item):
        return SelectionReason(kind="min", metric="g", value=item.g if item.g is not None else 0)


class AStar(Strategy):
    def make_item(self, key, at, g, h, depth, weight):
        f = g + weight * h
        return FrontierItem(key=key, at=at, g=g, h=h, f=f, priority=f)

    def selection_reason(self, item):
        value = item.f if item.f is not None else (item.priority or 0)
        return SelectionReason(kind="min", metric="f", value=value)


STRATEGIES: Dict[str, Strategy] = {
    "bfs": BreadthFirst("bfs", FRONTIER_QUEUE, cost_aware=False, why_not_metric=None),
    "dfs": DepthFirst("dfs", FRONTIER_STACK, cost_aware=False, why_not_metric=None),
    "dijkstra": Dijkstra("dijkstra", FRONTIER_MINHEAP, cost_aware=True, why_not_metric="g"),
    "astar": AStar("astar", FRONTIER_MINHEAP, cost_aware=True, why_not_metric="f"),
}


def strategy_for(algorithm: str) -> Strategy:
    try:
        return STRATEGIES[algorithm]
    except KeyError:
        raise ValueError(f"No strategy registered for {algorithm!r}") from None
