"""
Trace events emitted while extraction strategies run.

Every extractor takes an optional ``trace`` callable. It is called with a
:class:`TraceEvent` each time a strategy is attempted, succeeds, or fails
to parse its input, so callers can see which strategy produced a field
without scraping log output.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

ATTEMPTED = "attempted"
SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass(frozen=True)
class TraceEvent:
    stage: str
    strategy: str
    status: str
    count: int = 0
    detail: str = ""


Tracer = Optional[Callable[[TraceEvent], None]]


def emit(trace: Tracer, stage: str, strategy: str, status: str, count: int = 0, detail: str = "") -> None:
    if trace is not None:
        trace(TraceEvent(stage=stage, strategy=strategy, status=status, count=count, detail=detail))


class TraceRecorder:
    """Collects trace events in the order they were emitted."""

    def __init__(self):
        self.events: List[TraceEvent] = []

    def __call__(self, event: TraceEvent) -> None:
        self.events.append(event)

    def strategies(self, stage: str, status: str = SUCCEEDED) -> List[str]:
        return [e.strategy for e in self.events if e.stage == stage and e.status == status]

    def winning_strategy(self, stage: str) -> Optional[str]:
        """Return the last strategy that succeeded for a stage, if any."""
        succeeded = self.strategies(stage, SUCCEEDED)
        return succeeded[-1] if succeeded else None
