# src/pathtrace/core/heap.py
#!/usr/bin/env python3
"""
Minimal binary min-heap keyed by priority only.

No decrease-key: when a cost improves the caller pushes a fresh entry and the
older one for the same key stays behind as a stale duplicate. Callers filter
stale entries when they pop (see engine._select).
"""

from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass(frozen=True)
class HeapNode:
    id: str
    value: Any
    priority: float


class MinHeap:
    def __init__(self):
        self._arr: List[HeapNode] = []

    def __len__(self) -> int:
        return len(self._arr)

    def size(self) -> int:
        return len(self._arr)

    def peek(self) -> Optional[HeapNode]:
        return self._arr[0] if self._arr else None

    def to_list(self) -> List[HeapNode]:
        # copy in storage order; nodes are frozen so a shallow copy is enough
        return list(self._arr)

    def push(self, node: HeapNode) -> None:
        self._arr.append(node)
        self._sift_up(len(self._arr) - 1)

    def pop(self) -> Optional[HeapNode]:
        if not self._arr:
            return None
        top = self._arr[0]
        last = self._arr.pop()
        if self._arr:
            self._arr[0] = last
            self._sift_down(0)
        return top

    # -------------------- internals --------------------

    def _sift_up(self, i: int) -> None:
        a = self._arr
        while i > 0:
            p = (i - 1) // 2
            if a[p].priority <= a[i].priority:
                break
            a[p], a[i] = a[i], a[p]
            i = p

    def _sift_down(self, i: int) -> None:
        a = self._arr
        n = len(a)
        while True:
            l, r = 2 * i + 1, 2 * i + 2
            smallest = i
            if l < n and a[l].priority < a[smallest].priority:
                smallest = l
            if r < n and a[r].priority < a[smallest].priority:
                smallest = r
            if smallest == i:
                break
            a[i], a[smallest] = a[smallest], a[i]
            i = smallest
