# src/pathtrace/core/whynot.py
#!/usr/bin/env python3
"""
"Why not that one?": near-miss alternatives at a heap selection.

Exact ties with the chosen value are left out: a tie has no discriminator to
explain, so listing it as a rejection would be misleading.
"""

from math import inf
from typing import Iterable, List, Optional

from pathtrace.core.types import FrontierItem, RejectionReason

MAX_WHY_NOT = 4


def metric_value(item: FrontierItem, metric: str) -> float:
    if metric == "depth":
        return item.depth if item.depth is not None else 0
    v: Optional[float] = item.g if metric == "g" else item.f
    return inf if v is None else v


def why_not(frontier: Iterable[FrontierItem], chosen: FrontierItem, metric: str,
            limit: int = MAX_WHY_NOT) -> List[RejectionReason]:
    chosen_value = metric_value(chosen, metric)
    scored = [
        (metric_value(c, metric), c)
        for c in frontier
        if c.key != chosen.key
    ]
    scored = [(v, c) for v, c in scored if v != chosen_value]
    # sorted() is stable: equal values keep frontier order
    scored = sorted(scored, key=lambda vc: vc[0])[:limit]
    return [
        RejectionReason(candidate=c, chosen=chosen, metric=metric,
                        candidate_value=v, chosen_value=chosen_value)
        for v, c in scored
    ]
