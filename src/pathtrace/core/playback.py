# src/pathtrace/core/playback.py
#!/usr/bin/env python3
from typing import Optional

from pathtrace.core.types import StepSnapshot, Trace


class Playback:
    """Cursor over a finished Trace. Indexing only; the trace is never touched."""

    def __init__(self, trace: Optional[Trace] = None):
        self.trace = trace
        self.index = 0

    def __len__(self) -> int:
        return len(self.trace.steps) if self.trace is not None else 0

    @property
    def current(self) -> Optional[StepSnapshot]:
        if not len(self):
            return None
        return self.trace.steps[self.index]

    @property
    def at_end(self) -> bool:
        return self.index >= len(self) - 1

    def seek(self, i: int) -> Optional[StepSnapshot]:
        self.index = max(0, min(i, len(self) - 1))
        return self.current

    def step(self, direction: int = 1) -> Optional[StepSnapshot]:
        return self.seek(self.index + direction)

    def reset(self) -> None:
        self.index = 0

    def load(self, trace: Trace) -> None:
        self.trace = trace
        self.index = 0
