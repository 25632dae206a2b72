"""
Pipeline Events

Structured event emission for every pipeline stage. The core only talks to
an EventSink; where events end up is the caller's choice.
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineEvent:
    step: str
    outcome: str
    duration_ms: float
    entities: Dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[str] = None


class EventSink(Protocol):
    def emit(self, event: PipelineEvent) -> None: ...


class LoggingEventSink:
    """Forward events to the standard logging tree with the fields in extra"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def emit(self, event: PipelineEvent) -> None:
        level = logging.INFO if event.outcome == "ok" else logging.WARNING
        self.log.log(
            level,
            "%s %s (%.1f ms)",
            event.step,
            event.outcome,
            event.duration_ms,
            extra={
                "step": event.step,
                "outcome": event.outcome,
                "duration_ms": event.duration_ms,
                "entities": event.entities,
                "error_kind": event.error_kind,
            },
        )


class RecordingEventSink:
    """Keep events in memory"""

    def __init__(self):
        self.events: List[PipelineEvent] = []

    def emit(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def steps(self) -> List[str]:
        return [event.step for event in self.events]


@asynccontextmanager
async def timed_step(sink: EventSink, step: str, **entities: Any) -> AsyncIterator[Dict[str, Any]]:
    """
    Time a pipeline step and emit one event when it finishes.

    The yielded dict may be updated by the step to attach more entity ids.
    Exceptions are re-raised after the failure event is emitted.
    """
    started = time.perf_counter()
    try:
        yield entities
    except Exception as e:
        sink.emit(
            PipelineEvent(
                step=step,
                outcome="failed",
                duration_ms=(time.perf_counter() - started) * 1000,
                entities=dict(entities),
                error_kind=getattr(e, "kind", type(e).__name__),
            )
        )
        raise
    sink.emit(
        PipelineEvent(
            step=step,
            outcome="ok",
            duration_ms=(time.perf_counter() - started) * 1000,
            entities=dict(entities),
        )
    )
