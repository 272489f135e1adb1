# src/pathtrace/core/paths.py
#!/usr/bin/env python3
from typing import Callable, List, Mapping

from pathtrace.core.types import Coord


def reconstruct_path(came_from: Mapping[str, str], start_key: str, goal_key: str,
                     coordinate: Callable[[str], Coord]) -> List[Coord]:
    """
    Walk parent links goal -> start, reverse, map keys to coordinates.
    - start == goal: [start]
    - goal without a parent link: [] (caller asked before a successful find)
    """
    if start_key == goal_key:
        return [coordinate(start_key)]
    if goal_key not in came_from:
        return []

    keys: List[str] = [goal_key]
    cur = goal_key
    seen = {goal_key}
    while cur != start_key:
        prev = came_from.get(cur)
        if prev is None or prev in seen:
            # broken or cyclic chain
            return []
        seen.add(prev)
        keys.append(prev)
        cur = prev
    keys.reverse()
    return [coordinate(k) for k in keys]
