import random

import pytest

from pathtrace.core.dna import path_cost
from pathtrace.core.engine import (
    MSG_BFS_WIDE_GRAPH, MSG_CAP_HIT, MSG_DFS_DEEP, MSG_WEIGHTED_EXPAND, MSG_WEIGHTED_FOUND,
    build_trace, max_iterations_for,
)
from pathtrace.core.environment import (
    EnvironmentAdapter, GraphEdge, GraphEnvironment, GraphNode, coord_of, empty_grid,
    grid_from_rows,
)
from pathtrace.core.types import FRONTIER_MINHEAP, FRONTIER_QUEUE, FRONTIER_STACK, RunOptions

from search_reference import (
    bfs_hops, dijkstra_cost, min_edge_cost, random_graph, random_grid, reachable, run,
)

WALL_GAP = grid_from_rows([
    ".....",
    ".....",
    "##.##",
    ".....",
    ".....",
])


def _graph(directed, nodes, edges):
    return GraphEnvironment(
        directed=directed,
        nodes=tuple(GraphNode(k, at) for k, at in nodes.items()),
        edges=tuple(GraphEdge(a, b, c) for a, b, c in edges),
    )


# -------------------- example scenarios --------------------

def test_bfs_open_grid():
    trace = run(empty_grid(5, 5), "0,0", "4,4", "bfs")
    assert trace.found
    assert len(trace.path) == 9
    assert trace.path[0] == (0, 0) and trace.path[-1] == (4, 4)
    assert trace.metrics.explored <= 25


def test_astar_goes_through_the_gap():
    trace = run(WALL_GAP, "0,0", "4,4", "astar", "manhattan", 1)
    assert trace.found
    assert (2, 2) in trace.path
    assert len(trace.path) == 9


def test_start_equals_goal():
    trace = run(empty_grid(5, 5), "2,2", "2,2", "astar")
    phases = [s.phase for s in trace.steps]
    assert phases == ["init", "select", "found"]
    assert trace.found
    assert trace.path == ((2, 2),)
    assert trace.metrics.explored == 0
    assert trace.metrics.relaxations == 0
    assert trace.steps[-1].selection_reason.kind == "goal"


@pytest.mark.parametrize("algorithm", ["bfs", "dfs", "dijkstra", "astar"])
def test_walled_off_goal(algorithm):
    grid = grid_from_rows([
        ".....",
        ".....",
        ".....",
        "....#",
        "...#.",
    ])
    trace = run(grid, "0,0", "4,4", algorithm)
    assert not trace.found
    assert trace.path == ()
    assert trace.steps[-1].phase != "exhausted"
    assert trace.metrics.explored == len(reachable(grid, "0,0")) == 22
    assert trace.steps[-1].closed == frozenset(reachable(grid, "0,0"))


# -------------------- optimality --------------------

def test_bfs_matches_brute_force_hop_count():
    rng = random.Random(7)
    checked = 0
    for _ in range(40):
        grid = random_grid(rng, 6, 5, 0.3)
        goal = "5,4"
        expected = bfs_hops(grid, "0,0", goal)
        trace = run(grid, "0,0", goal, "bfs")
        assert trace.found == (expected is not None)
        if expected is not None:
            assert len(trace.path) - 1 == expected
            checked += 1
    assert checked > 5


@pytest.mark.parametrize("algorithm,heuristic,weight", [
    ("dijkstra", "manhattan", 1.0),
    ("astar", "euclidean", 1.0),
    ("astar", "euclidean", 0.5),
    ("astar", "euclidean", 0.0),
])
@pytest.mark.parametrize("directed", [False, True])
def test_cost_aware_paths_are_optimal(algorithm, heuristic, weight, directed):
    rng = random.Random(11)
    for _ in range(25):
        graph = random_graph(rng, 9, 8, directed=directed)
        goal = f"N{rng.randrange(1, 9)}"
        expected = dijkstra_cost(graph, "N0", goal)
        trace = run(graph, "N0", goal, algorithm, heuristic, weight)
        assert trace.found
        assert path_cost(trace) == pytest.approx(expected)

        found = trace.steps[-1]
        keys = [goal]
        while keys[-1] != "N0":
            keys.append(found.came_from[keys[-1]])
        keys.reverse()
        walked = sum(min_edge_cost(graph, a, b) for a, b in zip(keys, keys[1:]))
        assert walked == pytest.approx(expected)


def test_bfs_on_graph_counts_hops_not_cost():
    graph = _graph(False, {"S": (0, 0), "A": (1, 0), "B": (2, 0), "G": (3, 0)},
                   [("S", "G", 100), ("S", "A", 1), ("A", "B", 1), ("B", "G", 1)])
    assert run(graph, "S", "G", "bfs").path == ((0, 0), (3, 0))
    assert run(graph, "S", "G", "dijkstra").path == ((0, 0), (1, 0), (2, 0), (3, 0))


# -------------------- snapshot properties --------------------

def _all_traces():
    rng = random.Random(3)
    graph = random_graph(rng, 10, 10)
    for algo in ("bfs", "dfs", "dijkstra", "astar"):
        yield run(WALL_GAP, "0,0", "4,4", algo)
        yield run(graph, "N0", "N9", algo, "euclidean")
        yield run(empty_grid(4, 4), "0,0", "3,3", algo, "manhattan", 2.5)


def test_indices_are_positions():
    for trace in _all_traces():
        assert [s.index for s in trace.steps] == list(range(len(trace.steps)))
        assert trace.metrics.runtime_steps == len(trace.steps)


def test_closed_set_only_grows_and_is_never_reselected():
    for trace in _all_traces():
        prev = frozenset()
        for s in trace.steps:
            assert prev <= s.closed
            if s.phase == "select":
                assert s.current_key not in prev
            prev = s.closed


def test_relaxation_events_are_improvements():
    for trace in _all_traces():
        for prev, s in zip(trace.steps, trace.steps[1:]):
            r = s.relaxation
            if r is None:
                continue
            assert r.improved
            assert s.g_score[r.to_key] == r.new_g
            if r.old_g is None:
                assert r.to_key not in prev.g_score
            else:
                assert r.old_g > r.new_g
                assert prev.g_score[r.to_key] == r.old_g


def test_found_path_matches_parent_links():
    for trace in _all_traces():
        if not trace.found:
            continue
        found = trace.steps[-1]
        assert found.phase == "found"
        start = trace.steps[0].frontier[0].key
        keys = [found.current_key]
        while keys[-1] != start:
            keys.append(found.came_from[keys[-1]])
        assert len(keys) == len(trace.path)
        assert found.path == trace.path


def test_grid_path_round_trip_through_parent_links():
    trace = run(WALL_GAP, "0,0", "4,4", "dijkstra")
    found = trace.steps[-1]
    keys = ["4,4"]
    while keys[-1] != "0,0":
        keys.append(found.came_from[keys[-1]])
    assert tuple(coord_of(k) for k in reversed(keys)) == trace.path


def test_metrics_match_snapshots():
    for trace in _all_traces():
        assert trace.metrics.peak_frontier == max(len(s.frontier) for s in trace.steps)
        assert trace.metrics.peak_closed == max(len(s.closed) for s in trace.steps)
        assert trace.metrics.explored == len(trace.steps[-1].closed)
        relax_steps = [s for s in trace.steps if s.phase == "relax"]
        if trace.options.algorithm in ("dijkstra", "astar"):
            assert trace.metrics.relaxations == len(relax_steps)
        else:
            assert trace.metrics.relaxations == 0 and not relax_steps


def test_frontier_kind_follows_algorithm():
    expected = {"bfs": FRONTIER_QUEUE, "dfs": FRONTIER_STACK,
                "dijkstra": FRONTIER_MINHEAP, "astar": FRONTIER_MINHEAP}
    for algo, kind in expected.items():
        trace = run(WALL_GAP, "0,0", "4,4", algo)
        assert {s.frontier_kind for s in trace.steps} == {kind}


def test_init_snapshot_seeds_start():
    trace = run(WALL_GAP, "0,0", "4,4", "astar")
    init = trace.steps[0]
    assert init.phase == "init"
    assert init.current_key is None
    assert init.visited == frozenset({"0,0"})
    assert dict(init.g_score) == {"0,0": 0}
    (item,) = init.frontier
    assert (item.g, item.h, item.f) == (0, 8, 8)


def test_unweighted_items_carry_depth_only():
    trace = run(WALL_GAP, "0,0", "4,4", "bfs")
    for s in trace.steps:
        for item in s.frontier:
            assert item.depth is not None
            assert item.g is None and item.f is None and item.priority is None


def test_snapshots_are_frozen_copies():
    trace = run(WALL_GAP, "0,0", "4,4", "dijkstra")
    first = trace.steps[0]
    assert first.closed == frozenset()
    assert dict(first.g_score) == {"0,0": 0}
    assert len(trace.steps[-1].g_score) > 1
    with pytest.raises(TypeError):
        first.g_score["x"] = 1
    with pytest.raises(TypeError):
        first.came_from["x"] = "y"
    assert isinstance(first.frontier, tuple)


def test_runs_are_deterministic():
    rng = random.Random(5)
    graph = random_graph(rng, 10, 12)

    def flat(trace):
        return [(s.phase, s.current_key, s.frontier, s.selected, s.selection_reason, s.why_not,
                 s.relaxation, s.path, s.warnings, s.visited, s.closed,
                 dict(s.came_from), dict(s.g_score)) for s in trace.steps]

    for algo in ("bfs", "dfs", "dijkstra", "astar"):
        a = run(graph, "N0", "N9", algo, "euclidean")
        b = run(graph, "N0", "N9", algo, "euclidean")
        assert flat(a) == flat(b)
        assert a.metrics == b.metrics and a.path == b.path


# -------------------- selection details --------------------

def test_selection_reasons():
    kinds = {"bfs": "fifo", "dfs": "lifo", "dijkstra": "min", "astar": "min"}
    for algo, kind in kinds.items():
        trace = run(WALL_GAP, "0,0", "4,4", algo)
        selects = [s for s in trace.steps if s.phase == "select"]
        assert {s.selection_reason.kind for s in selects} == {kind}
    trace = run(WALL_GAP, "0,0", "4,4", "astar")
    for s in trace.steps:
        if s.phase == "select":
            assert s.selection_reason.metric == "f"
            assert s.selection_reason.value == s.selected.f


def test_why_not_only_for_heap_strategies():
    for algo in ("bfs", "dfs"):
        assert all(s.why_not is None for s in run(WALL_GAP, "0,0", "4,4", algo).steps)

    trace = run(empty_grid(6, 6), "0,0", "5,5", "dijkstra")
    selects = [s for s in trace.steps if s.phase == "select"]
    assert all(s.why_not is not None for s in selects)
    assert any(s.why_not for s in selects)
    for s in selects:
        values = [r.candidate_value for r in s.why_not]
        assert len(values) <= 4
        assert values == sorted(values)
        for r in s.why_not:
            assert r.metric == "g"
            assert r.chosen is s.selected
            assert r.candidate.key != s.selected.key
            assert r.candidate_value > r.chosen_value


def test_stale_heap_entries_are_skipped():
    graph = _graph(True, {"S": (0, 0), "A": (1, 0), "B": (2, 0), "G": (3, 0)},
                   [("S", "A", 1), ("S", "B", 10), ("A", "B", 1), ("B", "G", 20)])
    trace = run(graph, "S", "G", "dijkstra")
    selected = [s.current_key for s in trace.steps if s.phase == "select"]
    assert selected == ["S", "A", "B", "G"]
    improvements = [s.relaxation for s in trace.steps if s.phase == "relax"]
    assert [(r.to_key, r.old_g, r.new_g) for r in improvements] == [
        ("A", None, 1), ("B", None, 10), ("B", 10, 2), ("G", None, 22),
    ]
    assert trace.metrics.relaxations == 4
    assert path_cost(trace) == 22


def test_non_improving_edges_are_silent():
    graph = _graph(False, {"S": (0, 0), "A": (1, 0), "G": (2, 0)},
                   [("S", "A", 1), ("S", "G", 2), ("A", "G", 5)])
    trace = run(graph, "S", "G", "dijkstra")
    targets = [s.relaxation.to_key for s in trace.steps if s.phase == "relax"]
    assert targets == ["A", "G"]


def test_unweighted_enqueue_emits_two_snapshots_per_neighbor():
    trace = run(empty_grid(3, 1), "0,0", "2,0", "bfs")
    phases = [s.phase for s in trace.steps]
    assert phases == ["init", "select", "expand", "enqueue", "enqueue",
                      "select", "expand", "enqueue", "enqueue", "select", "found"]
    first, second = trace.steps[3], trace.steps[4]
    assert first.relaxation.old_g is None and first.relaxation.new_g == 1
    assert len(first.frontier) == 0 and len(second.frontier) == 1
    assert second.relaxation is None


# -------------------- warnings and the cap --------------------

def test_weighted_astar_warns():
    trace = run(empty_grid(5, 5), "0,0", "4,4", "astar", "manhattan", 2.0)
    assert trace.steps[-1].warnings == (MSG_WEIGHTED_FOUND,)
    annotated = [s for s in trace.steps if s.phase == "expand" and s.warnings]
    assert annotated
    for s in annotated:
        base = trace.steps[s.index - 1]
        assert base.phase == "expand" and base.warnings is None
        assert base.closed == s.closed and base.frontier == s.frontier
        assert MSG_WEIGHTED_EXPAND in s.warnings


def test_standard_astar_has_no_warnings():
    trace = run(empty_grid(5, 5), "0,0", "4,4", "astar", "manhattan", 1.0)
    assert all(s.warnings is None for s in trace.steps)


def test_bfs_wide_frontier_warning():
    leaves = {f"L{i}": (i, 1) for i in range(8)}
    graph = _graph(False, {"S": (0, 0), "G": (9, 9), **leaves},
                   [("S", k, 1) for k in leaves])
    trace = run(graph, "S", "G", "bfs")
    assert any(s.warnings == (MSG_BFS_WIDE_GRAPH,) for s in trace.steps)
    assert not trace.found


def test_dfs_deep_warning():
    trace = run(empty_grid(10, 1), "0,0", "9,0", "dfs")
    warned = [s for s in trace.steps if s.warnings]
    assert warned
    assert all(s.warnings == (MSG_DFS_DEEP,) and s.selected.depth > 3.5 for s in warned)
    assert trace.found


class EndlessLattice(EnvironmentAdapter):
    """Unbounded grid that claims to be tiny."""
    size_basis = 1

    def coordinate(self, key):
        return coord_of(key)

    def neighbors(self, key):
        x, y = coord_of(key)
        return [(f"{x + 1},{y}", 1), (f"{x},{y + 1}", 1)]


@pytest.mark.parametrize("algorithm", ["bfs", "dfs", "dijkstra", "astar"])
def test_iteration_cap_stops_runaway_search(algorithm):
    trace = build_trace(EndlessLattice(), "0,0", "-1,-1", RunOptions(algorithm))
    last = trace.steps[-1]
    assert last.phase == "exhausted"
    assert last.warnings == (MSG_CAP_HIT,)
    assert not trace.found and trace.path == ()
    assert sum(1 for s in trace.steps if s.phase == "select") == 100


def test_iteration_cap_formula():
    assert max_iterations_for(1) == 100
    assert max_iterations_for(25) == 500
    assert max_iterations_for(499) == 9980
    assert max_iterations_for(10_000) == 10000


def test_malformed_edges_do_not_abort_the_run():
    graph = _graph(False, {"S": (0, 0), "G": (1, 0)},
                   [("S", "ghost", 1), ("S", "G", 3)])
    trace = run(graph, "S", "G", "dijkstra")
    assert trace.found
    assert all("ghost" not in s.visited for s in trace.steps)


def test_options_are_carried_on_the_trace():
    opts = RunOptions("dfs", "euclidean", 1.5)
    trace = build_trace(WALL_GAP, "0,0", "4,4", opts)
    assert trace.options is opts
