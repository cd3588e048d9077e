"""Session summary aggregator.

Condenses an engine's event and change logs into a single
JSON-serializable report.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from orthohr.analytics.orthostatic import Severity

if TYPE_CHECKING:
    from orthohr.engine import MonitorEngine


@dataclass
class SessionSummary:
    """Orthostatic and heart-rate-change report for one monitoring session."""

    posture: str
    current_rate: int = 0
    baseline_rate: int = 0

    # Orthostatic events
    event_count: int = 0
    events_by_severity: dict[str, int] = field(default_factory=dict)
    max_increase: int = 0
    longest_sustained_sec: float = 0.0
    recovered_count: int = 0
    mean_recovery_sec: float | None = None

    # Heart-rate changes
    significant_changes: int = 0
    major_changes: int = 0
    alerts_emitted: int = 0
    forwarded_updates: int = 0

    events: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"SessionSummary({self.event_count} events, "
            f"max +{self.max_increase} BPM, "
            f"{self.significant_changes} changes, "
            f"{self.alerts_emitted} alerts)"
        )


def build_session_summary(engine: MonitorEngine, include_events: bool = True) -> SessionSummary:
    """Build a summary from the engine's current logs.

    Args:
        engine: The engine to summarise.
        include_events: Embed each event's dict (pattern included).
    """
    events = engine.events
    changes = engine.significant_changes

    summary = SessionSummary(
        posture=engine.posture.value,
        current_rate=engine.current_rate,
        baseline_rate=engine.baseline_rate,
        events_by_severity={s.value: 0 for s in Severity},
    )

    for ev in events:
        summary.events_by_severity[ev.severity.value] += 1
    summary.event_count = len(events)

    if events:
        summary.max_increase = max(ev.increase for ev in events)
        summary.longest_sustained_sec = round(max(ev.sustained_duration for ev in events), 1)
        recoveries = [ev.recovery_time for ev in events if ev.is_recovered and ev.recovery_time is not None]
        summary.recovered_count = sum(1 for ev in events if ev.is_recovered)
        if recoveries:
            summary.mean_recovery_sec = round(sum(recoveries) / len(recoveries), 1)

    summary.significant_changes = len(changes)
    summary.major_changes = sum(1 for c in changes if c.is_major)
    summary.alerts_emitted = engine.evaluator.alerts_emitted
    summary.forwarded_updates = engine.forwarded_count

    if include_events:
        summary.events = [ev.to_dict() for ev in events]

    return summary
