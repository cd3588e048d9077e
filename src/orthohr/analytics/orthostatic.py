"""Orthostatic event tracking.

Follows heart rate through one standing episode at a time and records
sustained elevations (>= 30 bpm over the standing baseline for >= 30 s),
the pattern that led to them, and whether the heart rate later settled
back to within 10 bpm of baseline.

Per-episode phases::

    NONE -> ELEVATED -> RECOVERING -> RECOVERED
              ^             |
              +-------------+   (re-elevation inside the same episode)

An event is appended when an elevation ends, either by dropping under the
threshold or by the wearer sitting down.  The newest event may be amended
once with its recovery time.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum

from loguru import logger

from orthohr.config import TrackerConfig
from orthohr.history import BoundedLog

# Severity escalation (seconds of sustained elevation)
SUSTAINED_SEVERE_SEC = 600.0
SUSTAINED_MODERATE_SEC = 180.0


class Severity(str, Enum):
    """Clinical severity tier of an orthostatic response."""

    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"

    @property
    def label(self) -> str:
        return _SEVERITY_LABELS[self]

    @property
    def color(self) -> str:
        return _SEVERITY_COLORS[self]


_SEVERITY_LABELS = {
    Severity.NORMAL: "Normal",
    Severity.MILD: "Mild Response",
    Severity.MODERATE: "Moderate Response",
    Severity.SEVERE: "Significant Response",
}

_SEVERITY_COLORS = {
    Severity.NORMAL: "green",
    Severity.MILD: "yellow",
    Severity.MODERATE: "orange",
    Severity.SEVERE: "red",
}


def classify_severity(increase: int, sustained_duration: float) -> Severity:
    """Severity from peak increase (bpm) and sustained elevation (s).

    Base tier by increase: <30 normal, 30-39 mild, 40-49 moderate,
    >=50 severe.  Ten minutes sustained at >=30 bpm is always severe;
    three minutes sustained lifts mild to moderate.
    """
    if increase >= 50:
        base = Severity.SEVERE
    elif increase >= 40:
        base = Severity.MODERATE
    elif increase >= 30:
        base = Severity.MILD
    else:
        base = Severity.NORMAL

    if sustained_duration >= SUSTAINED_SEVERE_SEC and increase >= 30:
        return Severity.SEVERE
    if sustained_duration >= SUSTAINED_MODERATE_SEC and base == Severity.MILD:
        return Severity.MODERATE
    return base


@dataclass(frozen=True)
class HeartRatePoint:
    heart_rate: int
    seconds_since_standing: float


@dataclass(frozen=True)
class OrthostaticEvent:
    """A completed (possibly later recovery-amended) sustained elevation."""

    timestamp: float  # when the elevation began
    baseline_heart_rate: int
    peak_heart_rate: int
    increase: int
    duration: float  # standing time when the event was detected
    sustained_duration: float
    recovery_time: float | None = None
    heart_rate_pattern: tuple[HeartRatePoint, ...] = ()
    is_recovered: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def severity(self) -> Severity:
        return classify_severity(self.increase, self.sustained_duration)

    @property
    def is_sustained_response(self) -> bool:
        return self.sustained_duration >= SUSTAINED_SEVERE_SEC and self.increase >= 30

    @property
    def description(self) -> str:
        sustained = ""
        if self.sustained_duration >= 60:
            sustained = f" (sustained {self.sustained_duration / 60:.0f} min)"
        if self.recovery_time is not None:
            recovery = f", recovered in {self.recovery_time:.0f}s"
        elif self.is_recovered:
            recovery = ", recovered"
        else:
            recovery = ", not recovered"
        return (
            f"Standing: +{self.increase} BPM "
            f"({self.baseline_heart_rate}→{self.peak_heart_rate}){sustained}{recovery}"
        )

    @property
    def clinical_summary(self) -> str:
        indicator = " [Sustained Response]" if self.is_sustained_response else ""
        return f"Peak: +{self.increase} BPM, Sustained: {int(self.sustained_duration)}s{indicator}"

    def to_dict(self) -> dict:
        d = asdict(self)
        d["heart_rate_pattern"] = [asdict(p) for p in self.heart_rate_pattern]
        d["severity"] = self.severity.value
        return d

    def __repr__(self) -> str:
        return f"OrthostaticEvent({self.severity.label}: {self.description})"


class ElevationPhase(str, Enum):
    NONE = "none"
    ELEVATED = "elevated"
    RECOVERING = "recovering"
    RECOVERED = "recovered"


@dataclass
class StandingEpisode:
    """Working state for one continuous standing interval."""

    started_at: float
    baseline_rate: int
    pattern: list[HeartRatePoint] = field(default_factory=list)
    phase: ElevationPhase = ElevationPhase.NONE
    elevation_started_at: float | None = None
    recovery_started_at: float | None = None
    near_baseline_since: float | None = None
    has_recovered: bool = False
    event_id: str | None = None  # event created by the current elevation

    @property
    def is_elevated(self) -> bool:
        return self.phase == ElevationPhase.ELEVATED

    def elapsed(self, now: float) -> float:
        return now - self.started_at


@dataclass(frozen=True)
class EventUpdate:
    """Tracker output: an event was created or amended."""

    kind: str  # "created" | "amended"
    event: OrthostaticEvent


class OrthostaticTracker:
    """Orthostatic response state machine.

    Not thread-safe: callers serialize access.
    """

    def __init__(self, config: TrackerConfig | None = None):
        self.config = config or TrackerConfig()
        self.events: BoundedLog[OrthostaticEvent] = BoundedLog(self.config.max_events)
        self.episode: StandingEpisode | None = None

    @property
    def is_standing(self) -> bool:
        return self.episode is not None

    # ------------------------------------------------------------------
    # Episode life cycle
    # ------------------------------------------------------------------

    def begin_standing(self, baseline_rate: int, now: float) -> None:
        """Start a fresh episode; previous episode state is discarded."""
        self.episode = StandingEpisode(started_at=now, baseline_rate=max(int(baseline_rate), 0))
        if self.episode.baseline_rate > 0:
            logger.info(f"Standing episode started, baseline {self.episode.baseline_rate} BPM")
        else:
            logger.info("Standing episode started without a baseline, events disabled")

    def end_standing(self, now: float) -> EventUpdate | None:
        """Close the episode, emitting an event for an unfinished elevation."""
        episode = self.episode
        if episode is None:
            return None

        update = None
        if episode.is_elevated and episode.elevation_started_at is not None:
            sustained = now - episode.elevation_started_at
            update = self._create_event(episode, sustained, episode.elapsed(now), now)

        logger.info(f"Standing episode ended after {episode.elapsed(now):.0f}s")
        self.episode = None
        return update

    # ------------------------------------------------------------------
    # Heart-rate evaluation
    # ------------------------------------------------------------------

    def update(self, heart_rate: int, now: float) -> EventUpdate | None:
        """Evaluate one heart-rate sample against the current episode."""
        episode = self.episode
        cfg = self.config
        if episode is None or episode.baseline_rate <= 0 or heart_rate <= 0:
            return None

        elapsed = episode.elapsed(now)
        if elapsed < cfg.settle_time:
            return None

        increase = heart_rate - episode.baseline_rate

        episode.pattern.append(HeartRatePoint(heart_rate, elapsed))
        horizon = elapsed - cfg.pattern_window
        episode.pattern = [p for p in episode.pattern if p.seconds_since_standing > horizon]

        if increase >= cfg.elevation_threshold:
            if not episode.is_elevated:
                self._start_elevation(episode, heart_rate, increase, now, elapsed)
            return None

        if episode.is_elevated:
            return self._end_elevation(episode, increase, now, elapsed)

        if episode.phase == ElevationPhase.RECOVERING:
            return self._monitor_recovery(episode, increase, now)

        return None

    def _start_elevation(self, episode: StandingEpisode, heart_rate: int, increase: int,
                         now: float, elapsed: float) -> None:
        episode.phase = ElevationPhase.ELEVATED
        episode.elevation_started_at = now
        episode.recovery_started_at = None
        episode.near_baseline_since = None
        episode.has_recovered = False
        episode.event_id = None
        logger.debug(f"Elevation started: {heart_rate} BPM (+{increase}) at {elapsed:.0f}s")

    def _end_elevation(self, episode: StandingEpisode, increase: int,
                       now: float, elapsed: float) -> EventUpdate | None:
        sustained = now - episode.elevation_started_at
        episode.phase = ElevationPhase.RECOVERING
        episode.recovery_started_at = now
        episode.near_baseline_since = now if increase <= self.config.recovery_margin else None
        logger.debug(f"Recovery started after {sustained:.0f}s sustained elevation")
        return self._create_event(episode, sustained, elapsed, now)

    def _monitor_recovery(self, episode: StandingEpisode, increase: int,
                          now: float) -> EventUpdate | None:
        if increase > self.config.recovery_margin:
            episode.near_baseline_since = None
            return None
        if episode.near_baseline_since is None:
            episode.near_baseline_since = now
            return None

        recovery_time = now - episode.near_baseline_since
        if recovery_time < self.config.recovery_hold:
            return None

        episode.has_recovered = True
        episode.phase = ElevationPhase.RECOVERED
        logger.info(f"Full recovery achieved in {recovery_time:.0f}s")
        return self._amend_recovery(episode, recovery_time)

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    def _create_event(self, episode: StandingEpisode, sustained: float,
                      standing_duration: float, now: float) -> EventUpdate | None:
        if sustained < self.config.min_sustained:
            logger.debug(f"Elevation of {sustained:.0f}s too brief, discarded")
            return None

        # Peak comes from the retained pattern window only
        peak = max((p.heart_rate for p in episode.pattern), default=episode.baseline_rate)
        event = OrthostaticEvent(
            timestamp=now - sustained,
            baseline_heart_rate=episode.baseline_rate,
            peak_heart_rate=peak,
            increase=peak - episode.baseline_rate,
            duration=standing_duration,
            sustained_duration=sustained,
            recovery_time=None,
            heart_rate_pattern=tuple(episode.pattern),
            is_recovered=False,
        )
        self.events.append(event)
        episode.event_id = event.id
        logger.info(f"Orthostatic event: {event.description} [{event.severity.label}]")
        return EventUpdate("created", event)

    def _amend_recovery(self, episode: StandingEpisode, recovery_time: float) -> EventUpdate | None:
        last = self.events.last
        if last is None or episode.event_id is None or last.id != episode.event_id:
            return None
        if last.is_recovered:
            return None
        amended = self.events.amend_last(recovery_time=recovery_time, is_recovered=True)
        logger.info(f"Updated event with recovery: {amended.description}")
        return EventUpdate("amended", amended)
