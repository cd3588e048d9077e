"""Synthetic standing-response sessions.

Generates replayable session logs (see :mod:`orthohr.replay`) for a seated
lead-in, a stand-up, the heart-rate response and a return to sitting.
Two profiles mirror the responses the detector is meant to separate:

- ``elevated``: +35..65 BPM held for 5-15 minutes, recovering ~70% of the
  time.
- ``normal``: +15..25 BPM transient rise that settles quickly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

PROFILES = ("elevated", "normal")

SEATED_LEAD_IN = 60.0
RISE_SEC = 30.0
MOTION_REFRESH_SEC = 90.0
SIT_REPORT_GAP = 20.0


@dataclass
class SimulatedSession:
    """A generated session log and the parameters that produced it."""

    profile: str
    baseline: int
    peak: int
    sustained_sec: float
    recovery_sec: float | None
    stand_at: float
    sit_at: float
    entries: list[dict] = field(default_factory=list)

    @property
    def increase(self) -> int:
        return self.peak - self.baseline

    def __repr__(self) -> str:
        rec = f"{self.recovery_sec:.0f}s" if self.recovery_sec is not None else "none"
        return (
            f"SimulatedSession({self.profile}, {self.baseline}→{self.peak} BPM, "
            f"sustained={self.sustained_sec:.0f}s, recovery={rec}, "
            f"{len(self.entries)} entries)"
        )


def _hr(t: float, bpm: float) -> dict:
    return {"type": "hr", "t": round(t, 1), "bpm": int(round(bpm))}


def _motion(t: float, activity: str, confidence: str = "high") -> dict:
    return {"type": "motion", "t": round(t, 1), "activity": activity, "confidence": confidence}


def simulate_session(
    profile: str = "elevated",
    seed: int | None = None,
    hr_interval: float = 5.0,
) -> SimulatedSession:
    """Generate one seated -> standing -> seated session.

    Args:
        profile: ``"elevated"`` or ``"normal"``.
        seed: RNG seed for reproducible sessions.
        hr_interval: Seconds between heart-rate samples.
    """
    if profile not in PROFILES:
        raise ValueError(f"unknown profile {profile!r}, expected one of {PROFILES}")
    if hr_interval <= 0:
        raise ValueError("hr_interval must be positive")

    rng = np.random.default_rng(seed)

    if profile == "elevated":
        baseline = int(rng.integers(68, 79))
        increase = int(rng.integers(35, 66))
        sustained = float(rng.uniform(300.0, 900.0))
        recovery = float(rng.uniform(120.0, 300.0)) if rng.random() >= 0.3 else None
    else:
        baseline = int(rng.integers(70, 86))
        increase = int(rng.integers(15, 26))
        sustained = float(rng.uniform(30.0, 120.0))
        recovery = float(rng.uniform(30.0, 90.0))

    peak = baseline + increase
    stand_at = SEATED_LEAD_IN
    plateau_end = stand_at + RISE_SEC + sustained
    # Hold near baseline long enough for recovery to be confirmed
    sit_at = plateau_end + (recovery + 60.0 if recovery is not None else 30.0)

    # Elevated plateaus never dip under the detection threshold
    floor = baseline + 31 if profile == "elevated" else baseline

    entries: list[dict] = []
    for t in np.arange(0.0, sit_at + 60.0, hr_interval):
        t = float(t)
        noise = float(rng.uniform(-2.0, 2.0))
        if t < stand_at or t >= sit_at:
            bpm = baseline + noise
        elif t < stand_at + RISE_SEC:
            frac = (t - stand_at) / RISE_SEC
            bpm = baseline + increase * frac
            if t > stand_at:
                bpm += noise
        elif t < plateau_end:
            bpm = max(peak + 1.5 * noise, floor)
            bpm = min(bpm, peak)
        elif recovery is not None:
            frac = min((t - plateau_end) / (recovery / 2.0), 1.0)
            bpm = baseline + 3 + (increase - 3) * (1.0 - frac)
            if frac >= 1.0:
                bpm = baseline + 3 + noise
        else:
            bpm = max(peak + noise, floor)
        entries.append(_hr(t, bpm))

    entries.append(_motion(0.0, "stationary"))
    entries.append(_motion(stand_at, "walking"))
    t = stand_at + MOTION_REFRESH_SEC
    while t < sit_at:
        entries.append(_motion(t, "walking", "medium"))
        t += MOTION_REFRESH_SEC
    for i in range(3):
        entries.append(_motion(sit_at + i * SIT_REPORT_GAP, "stationary"))

    # Stable sort keeps heart rate ahead of motion at equal timestamps
    entries.sort(key=lambda e: e["t"])

    return SimulatedSession(
        profile=profile,
        baseline=baseline,
        peak=peak,
        sustained_sec=round(sustained, 1),
        recovery_sec=round(recovery, 1) if recovery is not None else None,
        stand_at=stand_at,
        sit_at=round(sit_at, 1),
        entries=entries,
    )


def write_session(session: SimulatedSession, path: str | Path) -> Path:
    """Write a session as JSONL."""
    p = Path(path)
    with open(p, "w") as f:
        for entry in session.entries:
            f.write(json.dumps(entry) + "\n")
    return p
