# src/pathtrace/app/viewer.py
#!/usr/bin/env python3
"""
Search Trace Viewer: plays back a finished Trace, one snapshot per tick.

- Keyboard:
    [SPACE]      -> play/pause
    [N]/[B]      -> step forward / back
    [R]          -> rewind to step 0
    [+]/[-]      -> steps/sec
    [1]..[4]     -> BFS / DFS / Dijkstra / A*
    [H]          -> toggle heuristic (manhattan / euclidean)
    [C]          -> comparison mode on/off
    [TAB]        -> (comparison) show primary / secondary trace
    [M]          -> next map
    [Q]/[ESC]    -> quit

Config (env, overridden by CLI):
    PATHTRACE_ALGO      / --algo=bfs|dfs|dijkstra|astar
    PATHTRACE_HEURISTIC / --heuristic=manhattan|euclidean
    PATHTRACE_WEIGHT    / --weight=<float >= 0>
    PATHTRACE_MAP       / --map=<map key or path to .json>
    PATHTRACE_COMPARE   / --compare=<algorithm>

The viewer only reads Traces; every search happens in pathtrace.core.engine.
"""

import os
import sys
import time
from dataclasses import dataclass, replace
from math import isfinite
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import pygame

from pathtrace.core.compare import Comparison, run_comparison
from pathtrace.core.dna import AlgorithmDNA, compute_algorithm_dna
from pathtrace.core.engine import build_trace
from pathtrace.core.environment import GridEnvironment, adapter_for
from pathtrace.core.maps import LoadedMap, load_environment
from pathtrace.core.playback import Playback
from pathtrace.core.types import ALGORITHMS, HEURISTICS, RunOptions, StepSnapshot, Trace

# ---------- Config ----------
MAP_DIR = Path(__file__).resolve().parents[1] / "maps"
MAP_FILES = {
    "01_open_grid":   MAP_DIR / "01_open_grid.json",
    "02_wall_gap":    MAP_DIR / "02_wall_gap.json",
    "03_town_graph":  MAP_DIR / "03_town_graph.json",
}
DEFAULT_MAP = "02_wall_gap"

ALGO_LABELS = {"bfs": "BFS", "dfs": "DFS", "dijkstra": "Dijkstra", "astar": "A*"}

PANEL_W = 460
GRID_MARGIN = 16
FONT_NAME = None  # default pygame font

# Colors
WHITE       = (255, 255, 255)
BLACK       = (  0,   0,   0)
BLUE        = ( 70, 130, 180)
RED         = (220,  50,  47)
FLOOR_GRAY  = (200, 200, 200)
WALL_DARK   = ( 40,  44,  52)
EDGE_GRAY   = (120, 126, 140)
NEON_CYAN_A = (0, 150, 255, 110)
NEON_MAG_A  = (255, 0, 120, 90)
NEON_MINT   = (0, 255, 200)
CURRENT_YEL = (255, 210, 0)

CARD_BG     = (24, 28, 36, 220)
CARD_HI     = (255, 255, 255, 18)
TEXT_LIGHT  = (230, 235, 240)
TEXT_DIM    = (160, 168, 180)
ACCENT_GOLD = (255, 210, 0)
WARN_ORANGE = (255, 160, 60)


@dataclass(frozen=True)
class ViewerConfig:
    algorithm: str = "astar"
    heuristic: str = "manhattan"
    weight: float = 1.0
    map: str = DEFAULT_MAP
    compare: Optional[str] = None

    def run_options(self) -> RunOptions:
        return RunOptions(self.algorithm, self.heuristic, self.weight)


def resolve_config(argv: Sequence[str], environ: Mapping[str, str]) -> ViewerConfig:
    """Env vars first, then --key=value flags. Bad values keep the default."""
    raw: Dict[str, str] = {}
    for name in ("algo", "heuristic", "weight", "map", "compare"):
        v = environ.get(f"PATHTRACE_{name.upper()}")
        if v:
            raw[name] = v
    for arg in argv:
        if arg.startswith("--") and "=" in arg:
            k, v = arg[2:].split("=", 1)
            if k in ("algo", "heuristic", "weight", "map", "compare"):
                raw[k] = v

    cfg = ViewerConfig()
    algo = raw.get("algo", "").lower()
    if algo:
        if algo in ALGORITHMS:
            cfg = replace(cfg, algorithm=algo)
        else:
            print(f"Unknown algorithm '{algo}', using {cfg.algorithm}")
    heur = raw.get("heuristic", "").lower()
    if heur:
        if heur in HEURISTICS:
            cfg = replace(cfg, heuristic=heur)
        else:
            print(f"Unknown heuristic '{heur}', using {cfg.heuristic}")
    if "weight" in raw:
        try:
            w = float(raw["weight"])
            if not isfinite(w) or w < 0:
                raise ValueError(w)
            cfg = replace(cfg, weight=w)
        except ValueError:
            print(f"Invalid heuristic weight '{raw['weight']}', using {cfg.weight}")
    if raw.get("map"):
        cfg = replace(cfg, map=raw["map"])
    comp = raw.get("compare", "").lower()
    if comp:
        if comp in ALGORITHMS:
            cfg = replace(cfg, compare=comp)
        else:
            print(f"Unknown compare algorithm '{comp}', comparison off")
    return cfg


def resolve_map_path(key: str) -> Path:
    if key in MAP_FILES:
        return MAP_FILES[key]
    return Path(key)


def fit_graph_transform(points: Sequence[Tuple[float, float]], rect: Tuple[int, int, int, int],
                        pad: int = 24):
    """Scale/offset that fits `points` into rect=(x, y, w, h), aspect preserved."""
    x0, y0, w, h = rect
    if not points:
        return lambda p: (x0 + w // 2, y0 + h // 2)
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    span_x = max(xs) - min(xs) or 1
    span_y = max(ys) - min(ys) or 1
    scale = min((w - 2 * pad) / span_x, (h - 2 * pad) / span_y)
    min_x, min_y = min(xs), min(ys)

    def to_screen(p):
        return (int(x0 + pad + (p[0] - min_x) * scale),
                int(y0 + pad + (p[1] - min_y) * scale))
    return to_screen


def describe_reason(step: Optional[StepSnapshot]) -> str:
    if step is None or step.selection_reason is None:
        return "-"
    r = step.selection_reason
    if r.kind == "fifo":
        return "FIFO: oldest discovered first"
    if r.kind == "lifo":
        return "LIFO: newest discovered first"
    if r.kind == "goal":
        return "Goal reached"
    return f"lowest {r.metric}(n) = {r.value:.1f}"


# ---------- Simple UI Button ----------
class UIButton:
    def __init__(self, label: str, rect: pygame.Rect, callback, *, togglable: bool = False):
        self.label = label
        self.rect = rect
        self.callback = callback
        self.hover = False
        self.togglable = togglable
        self.active = False

    def set_active(self, value: bool):
        self.active = bool(value)

    def draw(self, screen: pygame.Surface, font: pygame.font.Font):
        base = pygame.Surface(self.rect.size, pygame.SRCALPHA)
        if self.active and self.togglable:
            bg = (58, 86, 160, 235)
        elif self.hover:
            bg = (46, 50, 60, 230)
        else:
            bg = (36, 40, 48, 220)
        pygame.draw.rect(base, bg, base.get_rect(), border_radius=10)
        screen.blit(base, self.rect.topleft)
        if self.active and self.togglable:
            pygame.draw.rect(screen, (120, 170, 255, 255), self.rect, width=2, border_radius=10)
        text = font.render(self.label, True, (235, 238, 242))
        screen.blit(text, text.get_rect(center=self.rect.center))

    def handle_mouse(self, event: pygame.event.Event):
        if event.type == pygame.MOUSEMOTION:
            self.hover = self.rect.collidepoint(event.pos)
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                self.callback()


# ---------- Viewer ----------
class Viewer:
    def __init__(self, loaded: LoadedMap, config: ViewerConfig):
        pygame.init()
        self.loaded = loaded
        self.adapter = adapter_for(loaded.environment)
        self.options = config.run_options()
        self.compare_algo = config.compare or "dijkstra"
        self.compare_on = config.compare is not None
        self.map_keys: List[str] = list(MAP_FILES)
        self.map_key = config.map

        self.font_small = pygame.font.Font(FONT_NAME, 16)
        self.font = pygame.font.Font(FONT_NAME, 18)
        self.font_big = pygame.font.Font(FONT_NAME, 22)

        self.clock = pygame.time.Clock()
        self.steps_per_sec = 8
        self.running = False
        self._last_step_t = 0.0

        self.screen = pygame.display.set_mode((1180, 720), pygame.RESIZABLE)
        pygame.display.set_caption(f"Search Trace - {loaded.name}")
        self._buttons: List[UIButton] = []
        self._layout(*self.screen.get_size())

        self.playback = Playback()
        self.compare_playback = Playback()
        self.show_secondary = False
        self.comparison: Optional[Comparison] = None
        self.dna: Optional[AlgorithmDNA] = None
        self._rebuild()

    # ---------- traces ----------
    def _rebuild(self):
        env, s, g = self.loaded.environment, self.loaded.start_key, self.loaded.goal_key
        if self.compare_on:
            self.comparison = run_comparison(env, s, g, self.options, self.compare_algo)
            self.playback.load(self.comparison.primary)
            self.compare_playback.load(self.comparison.secondary)
            self.dna = self.comparison.primary_dna
        else:
            trace = build_trace(env, s, g, self.options)
            self.comparison = None
            self.playback.load(trace)
            self.compare_playback.load(trace)
            self.dna = compute_algorithm_dna(trace)
        self.running = False
        self._refresh_active_states()

    @property
    def _active(self) -> Playback:
        if self.compare_on and self.show_secondary:
            return self.compare_playback
        return self.playback

    def _step(self, direction: int = 1):
        self.playback.step(direction)
        self.compare_playback.step(direction)
        if self.playback.at_end and self.compare_playback.at_end:
            self.running = False
            self._refresh_active_states()

    def _reset(self):
        self.running = False
        self.playback.reset()
        self.compare_playback.reset()
        self._refresh_active_states()

    def _switch_algo(self, algo: str):
        self.options = replace(self.options, algorithm=algo)
        self._rebuild()

    def _toggle_heuristic(self):
        h = "euclidean" if self.options.heuristic == "manhattan" else "manhattan"
        self.options = replace(self.options, heuristic=h)
        self._rebuild()

    def _toggle_compare(self):
        self.compare_on = not self.compare_on
        self.show_secondary = False
        self._rebuild()

    def _next_map(self):
        keys = self.map_keys
        idx = keys.index(self.map_key) if self.map_key in keys else -1
        key = keys[(idx + 1) % len(keys)]
        try:
            self.loaded = load_environment(MAP_FILES[key])
        except (OSError, ValueError) as ex:
            print(f"Failed to load map {key}: {ex}")
            return
        self.map_key = key
        self.adapter = adapter_for(self.loaded.environment)
        pygame.display.set_caption(f"Search Trace - {self.loaded.name}")
        self._layout(*self.screen.get_size())
        self._rebuild()

    # ---------- layout ----------
    def _layout(self, win_w: int, win_h: int):
        canvas_w = max(200, win_w - PANEL_W)
        self.canvas_rect = pygame.Rect(0, 0, canvas_w, win_h)
        self._right_band = pygame.Rect(canvas_w, 0, win_w - canvas_w, win_h)
        env = self.loaded.environment
        if isinstance(env, GridEnvironment):
            cs_w = (canvas_w - 2 * GRID_MARGIN) // max(1, env.width)
            cs_h = (win_h - 2 * GRID_MARGIN) // max(1, env.height)
            self.cell_size = max(6, min(cs_w, cs_h))
            gw, gh = env.width * self.cell_size, env.height * self.cell_size
            self._grid_origin = ((canvas_w - gw) // 2, (win_h - gh) // 2)
        else:
            pts = [n.at for n in env.nodes]
            self._to_screen = fit_graph_transform(
                pts, (GRID_MARGIN, GRID_MARGIN, canvas_w - 2 * GRID_MARGIN, win_h - 2 * GRID_MARGIN))
        self._build_buttons()

    def _cell_center(self, key: str) -> Tuple[int, int]:
        return self._point(self.adapter.coordinate(key))

    def _point(self, at) -> Tuple[int, int]:
        if isinstance(self.loaded.environment, GridEnvironment):
            ox, oy = self._grid_origin
            cs = self.cell_size
            return (int(ox + at[0] * cs + cs // 2), int(oy + at[1] * cs + cs // 2))
        return self._to_screen(at)

    # ---------- loop ----------
    def run(self):
        while True:
            self._handle_events()
            if self.running:
                now = time.time()
                if now - self._last_step_t >= 1.0 / max(1, self.steps_per_sec):
                    self._last_step_t = now
                    self._step(1)
            self._draw()
            self.clock.tick(60)

    def _handle_events(self):
        algo_keys = {pygame.K_1: "bfs", pygame.K_2: "dfs", pygame.K_3: "dijkstra", pygame.K_4: "astar"}
        for e in pygame.event.get():
            if e.type == pygame.QUIT:
                pygame.quit(); sys.exit(0)
            elif e.type == pygame.KEYDOWN:
                if e.key in (pygame.K_ESCAPE, pygame.K_q):
                    pygame.quit(); sys.exit(0)
                elif e.key == pygame.K_SPACE:
                    self._toggle_run()
                elif e.key == pygame.K_n:
                    self._step(1)
                elif e.key == pygame.K_b:
                    self._step(-1)
                elif e.key == pygame.K_r:
                    self._reset()
                elif e.key in (pygame.K_PLUS, pygame.K_EQUALS):
                    self._bump_speed(+1)
                elif e.key in (pygame.K_MINUS, pygame.K_UNDERSCORE):
                    self._bump_speed(-1)
                elif e.key in algo_keys:
                    self._switch_algo(algo_keys[e.key])
                elif e.key == pygame.K_h:
                    self._toggle_heuristic()
                elif e.key == pygame.K_c:
                    self._toggle_compare()
                elif e.key == pygame.K_TAB and self.compare_on:
                    self.show_secondary = not self.show_secondary
                elif e.key == pygame.K_m:
                    self._next_map()
            elif e.type == pygame.VIDEORESIZE:
                self.screen = pygame.display.set_mode((max(640, e.w), max(480, e.h)), pygame.RESIZABLE)
                self._layout(*self.screen.get_size())
            elif e.type in (pygame.MOUSEMOTION, pygame.MOUSEBUTTONDOWN):
                for b in self._buttons:
                    b.handle_mouse(e)

    def _toggle_run(self):
        if self.playback.at_end and self.compare_playback.at_end:
            return
        self.running = not self.running
        self._refresh_active_states()

    def _bump_speed(self, dv: int):
        self.steps_per_sec = int(max(1, min(60, self.steps_per_sec + dv)))

    # ---------- drawing ----------
    def _draw(self):
        self.screen.fill((24, 26, 32))
        step = self._active.current
        if isinstance(self.loaded.environment, GridEnvironment):
            self._draw_grid(step)
        else:
            self._draw_graph(step)
        self._draw_panel(step)
        pygame.display.flip()

    def _overlay_cell(self, key: str, rgba):
        cs = self.cell_size
        cx, cy = self._cell_center(key)
        s = pygame.Surface((cs, cs), pygame.SRCALPHA); s.fill(rgba)
        self.screen.blit(s, (cx - cs // 2, cy - cs // 2))

    def _draw_grid(self, step: Optional[StepSnapshot]):
        env: GridEnvironment = self.loaded.environment
        cs = self.cell_size
        ox, oy = self._grid_origin
        for row in range(env.height):
            for col in range(env.width):
                rect = pygame.Rect(ox + col * cs, oy + row * cs, cs, cs)
                pygame.draw.rect(self.screen, WALL_DARK if env.is_wall((col, row)) else FLOOR_GRAY, rect)
                pygame.draw.rect(self.screen, BLACK, rect, 1)
        if step is not None:
            for k in step.closed:
                self._overlay_cell(k, NEON_MAG_A)
            for item in step.frontier:
                self._overlay_cell(item.key, NEON_CYAN_A)
        self._draw_common(step)

    def _draw_graph(self, step: Optional[StepSnapshot]):
        env = self.loaded.environment
        for e in env.edges:
            a, b = self._cell_center(e.from_id), self._cell_center(e.to_id)
            pygame.draw.line(self.screen, EDGE_GRAY, a, b, 2)
        closed = step.closed if step else frozenset()
        on_frontier = {i.key for i in step.frontier} if step else set()
        for n in env.nodes:
            c = self._cell_center(n.id)
            color = FLOOR_GRAY
            if n.id in closed:
                color = (255, 0, 120)
            elif n.id in on_frontier:
                color = (0, 150, 255)
            pygame.draw.circle(self.screen, color, c, 9)
            txt = self.font_small.render(n.label or n.id, True, TEXT_LIGHT)
            self.screen.blit(txt, (c[0] + 10, c[1] - 18))
        self._draw_common(step)

    def _draw_common(self, step: Optional[StepSnapshot]):
        if step is not None and step.path and len(step.path) >= 2:
            pts = [self._point(at) for at in step.path]
            pygame.draw.lines(self.screen, NEON_MINT, False, pts, 5)
        if step is not None and step.relaxation is not None:
            r = step.relaxation
            pygame.draw.line(self.screen, CURRENT_YEL, self._cell_center(r.from_key),
                             self._cell_center(r.to_key), 3)
        if step is not None and step.current_key is not None:
            pygame.draw.circle(self.screen, CURRENT_YEL, self._cell_center(step.current_key), 7, 2)
        self._draw_badge(self.loaded.start_key, BLUE, "S")
        self._draw_badge(self.loaded.goal_key, RED, "G")

    def _draw_badge(self, key: str, color, letter: str):
        cx, cy = self._cell_center(key)
        if isinstance(self.loaded.environment, GridEnvironment):
            radius = max(8, self.cell_size // 2 - 2)
        else:
            radius = 11
        pygame.draw.circle(self.screen, color, (cx, cy), radius)
        txt = self.font_small.render(letter, True, WHITE)
        self.screen.blit(txt, txt.get_rect(center=(cx, cy)))

    # ---------- buttons + panel ----------
    def _build_buttons(self):
        self._buttons.clear()
        rb = self._right_band
        x, y = rb.x + 16, rb.bottom - 3 * (34 + 8) - 8
        w, h, gap = (rb.width - 32 - 3 * 8) // 4, 34, 8

        def row(specs, y):
            for i, (label, cb, store_as) in enumerate(specs):
                btn = UIButton(label, pygame.Rect(x + i * (w + gap), y, w, h), cb,
                               togglable=store_as is not None)
                self._buttons.append(btn)
                if store_as:
                    setattr(self, store_as, btn)

        row([("Play", self._toggle_run, "btn_run"), ("Back", lambda: self._step(-1), None),
             ("Step", lambda: self._step(1), None), ("Reset", self._reset, None)], y)
        y += h + gap
        row([(ALGO_LABELS[a], (lambda a=a: self._switch_algo(a)), f"btn_algo_{a}") for a in ALGORITHMS], y)
        y += h + gap
        row([("Heuristic", self._toggle_heuristic, None), ("Compare", self._toggle_compare, "btn_compare"),
             ("Map", self._next_map, None), ("Speed +", lambda: self._bump_speed(+1), None)], y)
        self._refresh_active_states()

    def _refresh_active_states(self):
        if hasattr(self, "btn_run"):
            self.btn_run.set_active(self.running)
        for a in ALGORITHMS:
            btn = getattr(self, f"btn_algo_{a}", None)
            if btn is not None:
                btn.set_active(self.options.algorithm == a)
        if hasattr(self, "btn_compare"):
            self.btn_compare.set_active(self.compare_on)

    def _draw_panel(self, step: Optional[StepSnapshot]):
        rb = self._right_band
        card = pygame.Surface((rb.width - 20, rb.height - 20 - 3 * 42 - 8), pygame.SRCALPHA)
        pygame.draw.rect(card, CARD_BG, card.get_rect(), border_radius=14)
        pygame.draw.rect(card, CARD_HI, pygame.Rect(0, 0, card.get_width(), 24), border_radius=14)
        self.screen.blit(card, (rb.x + 10, rb.y + 10))

        x0, y0 = rb.x + 24, rb.y + 18

        def line(text, big=False, color=TEXT_LIGHT):
            nonlocal y0
            f = self.font_big if big else self.font
            surf = f.render(text, True, color)
            self.screen.blit(surf, (x0, y0))
            y0 += surf.get_height() + 5

        pb = self._active
        trace: Optional[Trace] = pb.trace
        algo = trace.options.algorithm if trace else self.options.algorithm
        line(f"{ALGO_LABELS[algo]}  ·  {self.options.heuristic}  ·  w={self.options.heuristic_weight:g}",
             big=True, color=ACCENT_GOLD)
        if step is not None:
            line(f"Step {step.index + 1}/{len(pb)}  phase: {step.phase}")
            line(f"Current: {step.current_key or '-'}")
            line(f"Why: {describe_reason(step)}")
            line(f"Frontier ({step.frontier_kind}): {len(step.frontier)}   Closed: {len(step.closed)}")
            if step.relaxation is not None:
                r = step.relaxation
                old = "new" if r.old_g is None else f"{r.old_g:.1f}"
                line(f"Relax {r.from_key} -> {r.to_key}: {old} -> {r.new_g:.1f}")
            for rej in (step.why_not or ())[:3]:
                line(f"  not {rej.candidate.key}: {rej.metric}={rej.candidate_value:.1f} "
                     f"> {rej.chosen_value:.1f}", color=TEXT_DIM)
            for w in step.warnings or ():
                line(w[:56], color=WARN_ORANGE)
        line("-" * 30)
        if trace is not None:
            m = trace.metrics
            line(f"Found: {'yes' if trace.found else 'no'}   Path: {len(trace.path)}")
            line(f"Explored: {m.explored}   Relaxations: {m.relaxations}")
            line(f"Peak frontier: {m.peak_frontier}   Peak closed: {m.peak_closed}")
        if self.comparison is not None:
            line("-" * 30)
            for dna in (self.comparison.primary_dna, self.comparison.secondary_dna):
                cost = "-" if dna.path_cost is None else f"{dna.path_cost:.1f}"
                line(f"{ALGO_LABELS[dna.algorithm]}: explored {dna.explored}, cost {cost}, "
                     f"{dna.exploration_style}", color=TEXT_DIM)
        elif self.dna is not None:
            for fp in self.dna.fingerprint:
                line(fp[:56], color=TEXT_DIM)
        line(f"Speed: {self.steps_per_sec} steps/s")

        for b in self._buttons:
            b.draw(self.screen, self.font_small)


# ---------- main ----------
def main(argv: Optional[Sequence[str]] = None):
    config = resolve_config(sys.argv[1:] if argv is None else argv, os.environ)
    try:
        loaded = load_environment(resolve_map_path(config.map))
    except (OSError, ValueError) as ex:
        print(f"Failed to load map {config.map}: {ex}")
        sys.exit(1)
    Viewer(loaded, config).run()


if __name__ == "__main__":
    main()
