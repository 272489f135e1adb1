# src/pathtrace/core/engine.py
#!/usr/bin/env python3
"""
Trace engine: runs one search and records every decision as a snapshot.

    build_trace(environment, start_key, goal_key, options) -> Trace

State machine:
    INIT -> (SELECT -> EXPAND -> RELAX/ENQUEUE ...)* -> FOUND | EXHAUSTED

One invocation owns all of its state (frontier, visited, closed, parents,
costs); nothing is shared between runs, so two runs over the same environment
can happen in any order. Output is deterministic for a given input: ties are
broken by insertion order of the frontier container.

Heap strategies push duplicates instead of decrease-key. A popped entry is
stale when its key is closed or its g is worse than the best known g; stale
entries are discarded at selection time.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Optional, Set, Tuple

from pathtrace.core.environment import COST_WEIGHTED, EnvironmentAdapter, adapter_for
from pathtrace.core.heuristics import heuristic_fn
from pathtrace.core.paths import reconstruct_path
from pathtrace.core.strategies import Strategy, strategy_for
from pathtrace.core.types import (
    FRONTIER_MINHEAP, Coord, FrontierItem, RejectionReason, RelaxationEvent,
    RunOptions, SelectionReason, StepSnapshot, Trace, TraceMetrics, freeze_map,
)
from pathtrace.core.whynot import why_not

logger = logging.getLogger(__name__)

MIN_ITERATIONS = 100
MAX_ITERATIONS = 10000
ITERATIONS_PER_NODE = 20
WARN_FRACTION = 0.35

GOAL_REASON = SelectionReason(kind="goal")

MSG_CAP_HIT = "Stopped early to avoid an infinite/very long run (iteration cap hit)."
MSG_WEIGHTED_FOUND = ("This A* run uses a weighted heuristic (>1), which can be faster "
                      "but may produce a suboptimal path.")
MSG_WEIGHTED_EXPAND = "Weighted A*: heuristic is amplified, may trade optimality for speed."
MSG_BFS_WIDE_GRID = "BFS frontier is growing large: BFS can become memory-intensive on wide open maps."
MSG_BFS_WIDE_GRAPH = "BFS frontier is growing large: BFS can become memory-intensive on wide/branchy graphs."
MSG_DFS_DEEP = ("DFS is going very deep: DFS can get stuck exploring long branches "
                "before finding a good route.")


def max_iterations_for(size_basis: int) -> int:
    return max(MIN_ITERATIONS, min(size_basis * ITERATIONS_PER_NODE, MAX_ITERATIONS))


class _Run:
    """Working state of a single invocation. Never escapes build_trace."""

    def __init__(self, adapter: EnvironmentAdapter, start_key: str, goal_key: str,
                 options: RunOptions):
        self.adapter = adapter
        self.start_key = start_key
        self.goal_key = goal_key
        self.options = options
        self.strategy: Strategy = strategy_for(options.algorithm)
        self.h = heuristic_fn(options.heuristic)
        self.goal_at: Coord = adapter.coordinate(goal_key)

        self.frontier = self.strategy.new_frontier()
        self.visited: Set[str] = set()
        self.closed: Set[str] = set()
        self.came_from: Dict[str, str] = {}
        self.g_score: Dict[str, float] = {}

        self.steps: List[StepSnapshot] = []
        self.relaxations = 0
        self.peak_frontier = 0
        self.peak_closed = 0

    # -------------------- snapshots --------------------

    def emit(self, phase: str, current_key: Optional[str] = None,
             selected: Optional[FrontierItem] = None,
             selection_reason: Optional[SelectionReason] = None,
             why_not_list: Optional[List[RejectionReason]] = None,
             relaxation: Optional[RelaxationEvent] = None,
             path: Optional[List[Coord]] = None,
             warnings: Optional[List[str]] = None) -> None:
        frontier = tuple(self.frontier.items())
        self.peak_frontier = max(self.peak_frontier, len(frontier))
        self.peak_closed = max(self.peak_closed, len(self.closed))
        self.steps.append(StepSnapshot(
            index=len(self.steps),
            phase=phase,
            current_key=current_key,
            current=selected.at if selected is not None else None,
            frontier_kind=self.frontier.kind,
            frontier=frontier,
            visited=frozenset(self.visited),
            closed=frozenset(self.closed),
            came_from=freeze_map(self.came_from),
            g_score=freeze_map(self.g_score),
            selected=selected,
            selection_reason=selection_reason,
            why_not=tuple(why_not_list) if why_not_list is not None else None,
            relaxation=relaxation,
            path=tuple(path) if path is not None else None,
            warnings=tuple(warnings) if warnings else None,
        ))

    # -------------------- phases --------------------

    def seed(self) -> None:
        at = self.adapter.coordinate(self.start_key)
        h0 = self.h(at, self.goal_at) if self.options.algorithm == "astar" else 0
        self.visited.add(self.start_key)
        self.g_score[self.start_key] = 0
        self.frontier.push(self.strategy.make_item(
            self.start_key, at, 0, h0, 0, self.options.heuristic_weight))
        self.emit("init")

    def select(self) -> Optional[FrontierItem]:
        if self.frontier.kind != FRONTIER_MINHEAP:
            return self.frontier.pop()
        while True:
            item = self.frontier.pop()
            if item is None:
                return None
            if item.key in self.closed:
                continue
            best = self.g_score.get(item.key)
            if best is not None and item.g is not None and item.g > best:
                continue
            return item

    def expansion_warnings(self, selected: FrontierItem) -> List[str]:
        warnings: List[str] = []
        basis = self.adapter.size_basis
        algo = self.options.algorithm
        if algo == "bfs" and len(self.frontier) > basis * WARN_FRACTION:
            graphish = self.adapter.cost_mode == COST_WEIGHTED
            warnings.append(MSG_BFS_WIDE_GRAPH if graphish else MSG_BFS_WIDE_GRID)
        if algo == "dfs" and (selected.depth or 0) > basis * WARN_FRACTION:
            warnings.append(MSG_DFS_DEEP)
        if algo == "astar" and self.options.heuristic_weight > 1:
            warnings.append(MSG_WEIGHTED_EXPAND)
        return warnings

    def relax_neighbors(self, selected: FrontierItem, reason: SelectionReason) -> None:
        cur = selected.key
        cur_g = self.g_score.get(cur, 0)
        cur_depth = selected.depth or 0
        weight = self.options.heuristic_weight
        is_astar = self.options.algorithm == "astar"

        for nb_key, edge_cost in self.adapter.neighbors(cur):
            if nb_key in self.closed:
                continue
            nb_at = self.adapter.coordinate(nb_key)

            if not self.strategy.cost_aware:
                if nb_key in self.visited:
                    continue
                new_g = cur_g + 1
                self.visited.add(nb_key)
                self.came_from[nb_key] = cur
                self.g_score[nb_key] = new_g
                item = self.strategy.make_item(nb_key, nb_at, new_g, 0, cur_depth + 1, weight)
                self.emit("enqueue", cur, selected, reason,
                          relaxation=RelaxationEvent(cur, nb_key, None, new_g))
                self.frontier.push(item)
                self.emit("enqueue", cur, selected, reason)
                continue

            step_cost = edge_cost if self.adapter.cost_mode == COST_WEIGHTED else 1
            tentative = cur_g + step_cost
            old_g = self.g_score.get(nb_key)
            if old_g is not None and not tentative < old_g:
                continue

            self.came_from[nb_key] = cur
            self.g_score[nb_key] = tentative
            self.visited.add(nb_key)
            self.relaxations += 1

            h = self.h(nb_at, self.goal_at) if is_astar else 0
            item = self.strategy.make_item(nb_key, nb_at, tentative, h, cur_depth + 1, weight)
            self.emit("relax", cur, selected, reason,
                      relaxation=RelaxationEvent(cur, nb_key, old_g, tentative))
            self.frontier.push(item)
            self.emit("enqueue", cur, selected, reason)

    def run(self) -> None:
        self.seed()
        cap = max_iterations_for(self.adapter.size_basis)
        iterations = 0

        while len(self.frontier) > 0:
            iterations += 1
            if iterations > cap:
                logger.warning(f"Iteration cap {cap} hit ({self.options.algorithm}, "
                               f"{len(self.closed)} explored)")
                self.emit("exhausted", warnings=[MSG_CAP_HIT])
                return

            selected = self.select()
            if selected is None:
                return
            if selected.key in self.closed:
                continue

            reason = self.strategy.selection_reason(selected)
            rejections = None
            if self.strategy.why_not_metric is not None:
                rejections = why_not([selected] + self.frontier.items(), selected,
                                     self.strategy.why_not_metric)
            self.emit("select", selected.key, selected, reason, why_not_list=rejections)

            if selected.key == self.goal_key:
                path = reconstruct_path(self.came_from, self.start_key, self.goal_key,
                                        self.adapter.coordinate)
                warnings = None
                if self.options.algorithm == "astar" and self.options.heuristic_weight > 1:
                    warnings = [MSG_WEIGHTED_FOUND]
                self.emit("found", selected.key, selected, GOAL_REASON, path=path, warnings=warnings)
                return

            self.closed.add(selected.key)
            self.emit("expand", selected.key, selected, reason)
            warnings = self.expansion_warnings(selected)
            if warnings:
                # same state, annotated
                self.emit("expand", selected.key, selected, reason, warnings=warnings)

            self.relax_neighbors(selected, reason)

    def edge_cost(self, from_key: str, to_key: str) -> Optional[float]:
        if self.adapter.cost_mode != COST_WEIGHTED:
            return 1
        costs = [c for k, c in self.adapter.neighbors(from_key) if k == to_key]
        return min(costs) if costs else None

    def found_path_cost(self) -> Optional[float]:
        """Summed edge cost along the parent chain from start to goal."""
        total = 0
        key = self.goal_key
        seen = {key}
        while key != self.start_key:
            parent = self.came_from.get(key)
            if parent is None or parent in seen:
                return None
            cost = self.edge_cost(parent, key)
            if cost is None:
                return None
            total += cost
            seen.add(parent)
            key = parent
        return total

    def result(self) -> Trace:
        steps = tuple(self.steps)
        found_steps = [s for s in steps if s.phase == "found"]
        found = bool(found_steps)
        path: Tuple[Coord, ...] = ()
        if found and found_steps[-1].path is not None:
            path = found_steps[-1].path
        return Trace(
            options=self.options,
            steps=steps,
            found=found,
            path=path,
            path_cost=self.found_path_cost() if found else None,
            cost_mode=self.adapter.cost_mode,
            metrics=TraceMetrics(
                explored=len(self.closed),
                relaxations=self.relaxations,
                peak_frontier=self.peak_frontier,
                peak_closed=self.peak_closed,
                runtime_steps=len(steps),
            ),
        )


def build_trace(environment, start_key: str, goal_key: str,
                options: Optional[RunOptions] = None) -> Trace:
    """
    Run one search and return its full Trace.
    `environment` is a GridEnvironment, a GraphEnvironment or any EnvironmentAdapter.
    """
    options = options or RunOptions()
    adapter = adapter_for(environment)
    logger.debug(f"build_trace {options.algorithm} {start_key!r} -> {goal_key!r} "
                 f"(size_basis={adapter.size_basis})")

    run = _Run(adapter, start_key, goal_key, options)
    run.run()
    trace = run.result()

    if trace.found:
        logger.info(f"Path found with {len(trace.path)} nodes in {trace.metrics.runtime_steps} steps")
    else:
        logger.info(f"Path not found. Steps: {trace.metrics.runtime_steps}, "
                    f"explored: {trace.metrics.explored}, final frontier: {len(run.frontier)}")
    return trace
