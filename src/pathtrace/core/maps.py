# src/pathtrace/core/maps.py
#!/usr/bin/env python3
"""
JSON map loader.

Grid map:
    {"kind": "grid", "width": W, "height": H,
     "cells": [[0,1,...], ...]            # [row][col], 1 = wall
       or "walls": ["x,y", ...]
       or "rows": ["..#..", ...],         # '#' = wall
     "start": [x, y], "goal": [x, y]}

Graph map:
    {"kind": "graph", "directed": false,
     "nodes": [{"id": "A", "x": 0, "y": 0, "label": "..."}, ...],
     "edges": [{"from": "A", "to": "B", "cost": 2.5}, ...],
     "start": "A", "goal": "B"}
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from pathtrace.core.environment import (
    GraphEdge, GraphEnvironment, GraphNode, GridEnvironment, grid_from_rows, key_of,
)


@dataclass(frozen=True)
class LoadedMap:
    name: str
    environment: Union[GridEnvironment, GraphEnvironment]
    start_key: str
    goal_key: str


def _require(data: Dict[str, Any], *keys: str) -> None:
    missing = [k for k in keys if k not in data]
    if missing:
        raise ValueError(f"map is missing required keys: {', '.join(missing)}")


def _grid_from_dict(data: Dict[str, Any]) -> GridEnvironment:
    if "rows" in data:
        grid = grid_from_rows(data["rows"])
        if not all(len(r) == grid.width for r in data["rows"]):
            raise ValueError("rows size mismatch")
        return grid

    _require(data, "width", "height")
    width = int(data["width"])
    height = int(data["height"])
    if "cells" in data:
        cells = data["cells"]
        if len(cells) != height or not all(len(r) == width for r in cells):
            raise ValueError("cells size mismatch")
        walls = frozenset(
            key_of((x, y))
            for y, row in enumerate(cells)
            for x, v in enumerate(row)
            if v == 1
        )
    else:
        walls = frozenset(str(k) for k in data.get("walls", []))
    return GridEnvironment(width, height, walls)


def _graph_from_dict(data: Dict[str, Any]) -> GraphEnvironment:
    _require(data, "nodes", "edges")
    nodes = tuple(
        GraphNode(id=str(n["id"]), at=(n["x"], n["y"]), label=n.get("label"))
        for n in data["nodes"]
    )
    edges = tuple(
        GraphEdge(from_id=str(e["from"]), to_id=str(e["to"]), cost=float(e.get("cost", 1)))
        for e in data["edges"]
    )
    return GraphEnvironment(directed=bool(data.get("directed", False)), nodes=nodes, edges=edges)


def environment_from_dict(data: Dict[str, Any], name: str = "custom") -> LoadedMap:
    _require(data, "start", "goal")
    kind = data.get("kind", "grid")
    try:
        if kind == "grid":
            env = _grid_from_dict(data)
            start, goal = tuple(data["start"]), tuple(data["goal"])
            for label, c in (("start", start), ("goal", goal)):
                if not env.in_bounds(c):
                    raise ValueError(f"{label} out of bounds")
            return LoadedMap(name, env, key_of(start), key_of(goal))
        if kind == "graph":
            env = _graph_from_dict(data)
            ids = {n.id for n in env.nodes}
            start, goal = str(data["start"]), str(data["goal"])
            for label, k in (("start", start), ("goal", goal)):
                if k not in ids:
                    raise ValueError(f"{label} {k!r} is not a node")
            return LoadedMap(name, env, start, goal)
    except (KeyError, TypeError) as ex:
        raise ValueError(f"malformed {kind} map: {ex}") from ex
    raise ValueError(f"unknown map kind {kind!r}")


def load_environment(path: Union[str, Path]) -> LoadedMap:
    path = Path(path)
    with open(path, "r") as f:
        data = json.load(f)
    return environment_from_dict(data, name=data.get("name", path.stem))
