"""Shared fixtures and helpers for the orthohr test suite."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from orthohr.analytics.orthostatic import OrthostaticEvent, OrthostaticTracker
from orthohr.engine import MonitorEngine
from orthohr.posture.activity import PostureClassifier


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_event(
    increase: int = 35,
    sustained: float = 60.0,
    baseline: int = 70,
    recovery_time: float | None = None,
    is_recovered: bool = False,
    timestamp: float = 0.0,
) -> OrthostaticEvent:
    """Build an OrthostaticEvent with peak = baseline + increase."""
    return OrthostaticEvent(
        timestamp=timestamp,
        baseline_heart_rate=baseline,
        peak_heart_rate=baseline + increase,
        increase=increase,
        duration=sustained + 10.0,
        sustained_duration=sustained,
        recovery_time=recovery_time,
        is_recovered=is_recovered,
    )


def standing_tracker(baseline: int = 70, at: float = 0.0) -> OrthostaticTracker:
    """A tracker with a standing episode already open."""
    tracker = OrthostaticTracker()
    tracker.begin_standing(baseline, at)
    return tracker


def feed(tracker: OrthostaticTracker, samples: list[tuple[float, int]]) -> list:
    """Feed ``(t, bpm)`` pairs; return the non-None updates."""
    updates = []
    for t, bpm in samples:
        u = tracker.update(bpm, t)
        if u is not None:
            updates.append(u)
    return updates


# ---------------------------------------------------------------------------
# Session log helpers
# ---------------------------------------------------------------------------


def write_jsonl(path: Path, entries: list) -> Path:
    """Write a list of dicts (or raw strings) as JSONL to the given path."""
    with open(path, "w") as f:
        for entry in entries:
            f.write((entry if isinstance(entry, str) else json.dumps(entry)) + "\n")
    return path


def hr_entry(t: float, bpm: int) -> dict:
    return {"type": "hr", "t": t, "bpm": bpm}


def motion_entry(t: float, activity: str, confidence: str = "high") -> dict:
    return {"type": "motion", "t": t, "activity": activity, "confidence": confidence}


def elevated_session() -> list[dict]:
    """Seated at 70, stands, +38 BPM for 930 s, then recovers.

    Walking reports every 100 s keep the wearer standing through the
    idle timeout.
    """
    entries = [
        hr_entry(0.0, 70),
        motion_entry(0.0, "walking"),
        hr_entry(12.0, 95),
        hr_entry(35.0, 105),
        hr_entry(600.0, 108),
        hr_entry(960.0, 102),
        hr_entry(965.0, 98),
        hr_entry(1010.0, 78),
        hr_entry(1045.0, 76),
    ]
    entries += [motion_entry(float(t), "walking", "medium") for t in range(100, 1001, 100)]
    # Stable: heart rate stays ahead of motion at equal timestamps
    return sorted(entries, key=lambda e: e["t"])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def classifier() -> PostureClassifier:
    return PostureClassifier()


@pytest.fixture
def engine() -> MonitorEngine:
    return MonitorEngine()
