"""Debounced standing/sitting classification from motion-activity reports.

Walking and running are trusted immediately.  Stationary-class reports are
ambiguous (standing still looks the same as sitting), so a Standing ->
Sitting change waits out a stabilization delay and is only confirmed if
the wearer stayed stationary.  Timers are deadlines compared against the
caller's clock on every observation or :meth:`PostureClassifier.poll`.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from orthohr.config import PostureConfig


class ActivityKind(str, Enum):
    """Motion-activity classes reported by the platform classifier."""

    WALKING = "walking"
    RUNNING = "running"
    STATIONARY = "stationary"
    AUTOMOTIVE = "automotive"
    CYCLING = "cycling"
    UNKNOWN = "unknown"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Posture(str, Enum):
    STANDING = "standing"
    SITTING = "sitting"

    @property
    def label(self) -> str:
        return self.value.capitalize()


MOVING = {ActivityKind.WALKING, ActivityKind.RUNNING}
STATIONARY_CLASS = {ActivityKind.STATIONARY, ActivityKind.AUTOMOTIVE, ActivityKind.CYCLING}
# Reports that override advisory accelerometer suggestions
HIGH_PRIORITY = {ActivityKind.WALKING, ActivityKind.RUNNING, ActivityKind.AUTOMOTIVE}


@dataclass(frozen=True)
class PostureSample:
    """One motion-activity observation."""

    activity: ActivityKind
    confidence: Confidence
    timestamp: float


@dataclass
class PostureState:
    """Classifier process state."""

    posture: Posture = Posture.SITTING
    consecutive_stationary: int = 0
    last_observation_at: float | None = None


@dataclass(frozen=True)
class PostureChanged:
    """A confirmed posture transition."""

    previous: Posture
    current: Posture
    timestamp: float
    delayed: bool = False
    source: str = "activity"

    @property
    def is_standing(self) -> bool:
        return self.current == Posture.STANDING

    def __repr__(self) -> str:
        tag = " (delayed)" if self.delayed else ""
        return (
            f"PostureChanged({self.previous.label} -> {self.current.label} "
            f"@ {self.timestamp:.1f}s via {self.source}{tag})"
        )


def _coerce(enum_cls, value):
    """Map a raw value onto *enum_cls*, or None if it is not a member."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        return None


class PostureClassifier:
    """Turns noisy activity reports into a debounced posture.

    Not thread-safe: callers serialize access.
    """

    def __init__(self, config: PostureConfig | None = None):
        self.config = config or PostureConfig()
        self.state = PostureState()
        self.history: deque[PostureSample] = deque(maxlen=self.config.history_size)
        self._pending_deadline: float | None = None
        self._last_priority_at: float | None = None

    @property
    def posture(self) -> Posture:
        return self.state.posture

    @property
    def is_standing(self) -> bool:
        return self.state.posture == Posture.STANDING

    @property
    def pending_deadline(self) -> float | None:
        """Deadline of a pending Standing -> Sitting change, if any."""
        return self._pending_deadline

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def observe(self, activity, confidence, now: float) -> list[PostureChanged]:
        """Process one activity report. Returns the resulting changes in order.

        At most two: an idle-timeout Sitting followed by whatever the report
        itself decides.  *activity* and *confidence* may be enum members or
        their string values.  Unrecognised values are dropped without
        touching state.
        """
        kind = _coerce(ActivityKind, activity)
        conf = _coerce(Confidence, confidence)
        if kind is None or conf is None:
            logger.debug(f"Ignoring malformed activity report: {activity!r}/{confidence!r}")
            return []

        changes = []
        idle_change = self._idle_fallback(now)
        if idle_change is not None:
            changes.append(idle_change)

        self.history.append(PostureSample(kind, conf, now))
        self.state.last_observation_at = now

        if conf == Confidence.LOW:
            logger.debug(f"Low confidence {kind.value} recorded, not acted on")
            return changes

        if kind in HIGH_PRIORITY:
            self._last_priority_at = now

        change = self._apply(kind, now) or self._resolve_pending(now)
        if change is not None:
            changes.append(change)
        return changes

    def poll(self, now: float) -> PostureChanged | None:
        """Check idle timeout and pending deadline without a new report."""
        return self._idle_fallback(now) or self._resolve_pending(now)

    def suggest(self, posture: Posture, now: float, source: str = "accelerometer") -> PostureChanged | None:
        """Apply an advisory posture unless a fresh high-priority report overrides it."""
        if (
            self._last_priority_at is not None
            and now - self._last_priority_at <= self.config.idle_timeout
        ):
            logger.debug(f"{source} suggestion {posture.value} overridden by activity report")
            return None
        if posture == self.state.posture:
            return None
        self.state.consecutive_stationary = 0
        self._pending_deadline = None
        return self._transition(posture, now, source=source)

    def force(self, posture: Posture, now: float) -> PostureChanged | None:
        """Manual override, e.g. a user toggling posture for testing."""
        self.state.consecutive_stationary = 0
        self._pending_deadline = None
        if posture == self.state.posture:
            return None
        return self._transition(posture, now, source="manual")

    def reset(self) -> None:
        self.state = PostureState()
        self.history.clear()
        self._pending_deadline = None
        self._last_priority_at = None

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _apply(self, kind: ActivityKind, now: float) -> PostureChanged | None:
        if kind in MOVING:
            self.state.consecutive_stationary = 0
            if self._pending_deadline is not None:
                logger.debug("Pending sitting change cancelled by movement")
                self._pending_deadline = None
            if self.state.posture == Posture.SITTING:
                return self._transition(Posture.STANDING, now)
            return None

        if kind in STATIONARY_CLASS:
            self.state.consecutive_stationary += 1
            count = self.state.consecutive_stationary

            if count >= self.config.force_stationary_count:
                self._pending_deadline = None
                if self.state.posture == Posture.STANDING:
                    return self._transition(Posture.SITTING, now)
                return None

            if self.state.posture == Posture.STANDING and self._pending_deadline is None:
                self._pending_deadline = now + self.config.stabilization_delay
                logger.debug(
                    f"Sitting change pending until {self._pending_deadline:.1f}s "
                    f"({count} stationary)"
                )
        return None

    def _resolve_pending(self, now: float) -> PostureChanged | None:
        if self._pending_deadline is None or now < self._pending_deadline:
            return None
        self._pending_deadline = None

        if self.state.consecutive_stationary < self.config.confirm_stationary_count:
            logger.debug("Delayed sitting change cancelled, not consistently stationary")
            return None
        if self.state.posture != Posture.STANDING:
            return None
        return self._transition(Posture.SITTING, now, delayed=True)

    def _idle_fallback(self, now: float) -> PostureChanged | None:
        last = self.state.last_observation_at
        if last is None or now - last <= self.config.idle_timeout:
            return None
        logger.debug(f"No activity report for {now - last:.0f}s, assuming stationary")
        self.state.last_observation_at = now
        return self._apply(ActivityKind.STATIONARY, now) or self._resolve_pending(now)

    def _transition(
        self,
        posture: Posture,
        now: float,
        delayed: bool = False,
        source: str = "activity",
    ) -> PostureChanged:
        change = PostureChanged(
            previous=self.state.posture,
            current=posture,
            timestamp=now,
            delayed=delayed,
            source=source,
        )
        self.state.posture = posture
        logger.info(f"Posture confirmed: {change.previous.label} -> {posture.label}")
        return change

    def status(self) -> dict:
        return {
            "posture": self.state.posture.value,
            "consecutive_stationary": self.state.consecutive_stationary,
            "last_observation_at": self.state.last_observation_at,
            "pending_deadline": self._pending_deadline,
        }
