"""Heart-rate monitoring engine.

Composition root for the posture classifier, the accelerometer estimator,
the orthostatic tracker and the change evaluator.  Every input carries its
own timestamp; the engine never reads a wall clock and never blocks, so a
recorded session replays deterministically.

The engine is not thread-safe.  Sensor callbacks arriving on different
threads must be serialized by the caller (a queue or a lock around the
engine).
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from orthohr.analytics.changes import AlertRequest, ChangeEvaluator, SignificantChange
from orthohr.analytics.orthostatic import EventUpdate, OrthostaticEvent, OrthostaticTracker
from orthohr.config import MonitorConfig
from orthohr.posture.accel import AccelPostureEstimator, PostureEstimate
from orthohr.posture.activity import Posture, PostureChanged, PostureClassifier


@dataclass(frozen=True)
class HeartRateSample:
    bpm: int
    timestamp: float


@dataclass(frozen=True)
class PostureUpdate:
    """A posture transition and the event it closed out, if any."""

    change: PostureChanged
    event_update: EventUpdate | None = None
    estimate: PostureEstimate | None = None


@dataclass(frozen=True)
class SampleResult:
    """Everything one accepted heart-rate sample produced.

    ``posture_update`` is a deadline (stabilization delay or idle timeout)
    that expired at this sample's timestamp, applied before the sample.
    """

    sample: HeartRateSample
    delta: int
    should_forward: bool
    event_update: EventUpdate | None = None
    change: SignificantChange | None = None
    alert: AlertRequest | None = None
    posture_update: PostureUpdate | None = None


def _valid_bpm(bpm) -> bool:
    return isinstance(bpm, int) and not isinstance(bpm, bool) and bpm > 0


class MonitorEngine:
    """Sequences posture and heart-rate processing for one wearer."""

    def __init__(self, config: MonitorConfig | None = None):
        self.config = config or MonitorConfig()
        self.classifier = PostureClassifier(self.config.posture)
        self.accel = AccelPostureEstimator(self.config.accel)
        self.tracker = OrthostaticTracker(self.config.tracker)
        self.evaluator = ChangeEvaluator(self.config.alerts)

        self.current_rate = 0
        self.previous_rate = 0
        self.baseline_rate = 0
        self.delta = 0

        self.last_forwarded_at: float | None = None
        self.last_forwarded_rate: int | None = None
        self.delta_mode = False
        self.forwarded_count = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def posture(self) -> Posture:
        return self.classifier.posture

    @property
    def is_standing(self) -> bool:
        return self.classifier.is_standing

    @property
    def events(self) -> list[OrthostaticEvent]:
        return self.tracker.events.to_list()

    @property
    def significant_changes(self) -> list[SignificantChange]:
        return self.evaluator.changes.to_list()

    # ------------------------------------------------------------------
    # Heart rate
    # ------------------------------------------------------------------

    def process_heart_rate(self, bpm: int, timestamp: float) -> SampleResult | None:
        """Handle one heart-rate sample.

        Returns None (state untouched) for non-positive or non-integer rates.
        """
        if not _valid_bpm(bpm):
            logger.debug(f"Ignoring invalid heart rate {bpm!r}")
            return None

        posture_update = self.poll(timestamp)

        if self.current_rate > 0:
            self.previous_rate = self.current_rate
        self.current_rate = bpm
        if self.baseline_rate == 0:
            self.baseline_rate = bpm

        self.delta = bpm - self.previous_rate if self.previous_rate > 0 else 0
        forward = self._should_forward(bpm, timestamp)

        event_update = self.tracker.update(bpm, timestamp)
        outcome = self.evaluator.evaluate(self.previous_rate, bpm, timestamp)

        return SampleResult(
            sample=HeartRateSample(bpm, timestamp),
            delta=self.delta,
            should_forward=forward,
            event_update=event_update,
            change=outcome.change,
            alert=outcome.alert,
            posture_update=posture_update,
        )

    def _should_forward(self, bpm: int, timestamp: float) -> bool:
        cfg = self.config.recording
        threshold = self.config.alerts.minor_threshold
        significant = abs(self.delta) >= threshold

        # Delta mode tracks drift from the last forwarded rate, not the last sample
        drift = abs(bpm - self.last_forwarded_rate) if self.last_forwarded_rate is not None else 0
        if drift >= threshold and not self.delta_mode:
            self.delta_mode = True
            logger.debug(f"Entering delta mode (Δ{drift} BPM since last forward)")
        elif drift < cfg.settle_delta and self.delta_mode:
            self.delta_mode = False
            logger.debug("Leaving delta mode, heart rate settled")

        interval = cfg.significant_interval if self.delta_mode else cfg.recording_interval
        forward = (
            self.last_forwarded_at is None
            or timestamp - self.last_forwarded_at >= interval
            or significant
        )
        if forward:
            self.last_forwarded_at = timestamp
            self.last_forwarded_rate = bpm
            self.forwarded_count += 1
        return forward

    # ------------------------------------------------------------------
    # Posture
    # ------------------------------------------------------------------

    def observe_motion(self, activity, confidence, timestamp: float) -> list[PostureUpdate]:
        """Feed one motion-activity report.

        Returns one update per posture change, in order.  An idle-timeout
        Sitting can precede the change the report itself causes.
        """
        updates = []
        for change in self.classifier.observe(activity, confidence, timestamp):
            updates.append(self._apply_change(change, change.timestamp))
        return updates

    def observe_accel(self, x: float, y: float, z: float, timestamp: float) -> PostureUpdate | None:
        """Feed one accelerometer reading (advisory posture source)."""
        estimate = self.accel.add(x, y, z, timestamp)
        if estimate is None or not estimate.flipped:
            return None
        change = self.classifier.suggest(estimate.posture, timestamp)
        update = self._apply_change(change, timestamp)
        if update is None:
            # Overridden; realign so the estimator can flip again later
            self.accel.reset(self.classifier.posture)
            return None
        return PostureUpdate(update.change, update.event_update, estimate)

    def poll(self, now: float) -> PostureUpdate | None:
        """Let pending deadlines (stabilization delay, idle timeout) expire."""
        return self._apply_change(self.classifier.poll(now), now)

    def set_posture(self, standing: bool, timestamp: float) -> PostureUpdate | None:
        """Manual posture override."""
        posture = Posture.STANDING if standing else Posture.SITTING
        return self._apply_change(self.classifier.force(posture, timestamp), timestamp)

    def _apply_change(self, change: PostureChanged | None, now: float) -> PostureUpdate | None:
        if change is None:
            return None

        event_update = None
        if change.current == Posture.STANDING:
            if self.tracker.is_standing:
                event_update = self.tracker.end_standing(now)
            baseline = self.current_rate if self.current_rate > 0 else self.previous_rate
            self.tracker.begin_standing(baseline, now)
        else:
            event_update = self.tracker.end_standing(now)

        self.accel.reset(change.current)
        return PostureUpdate(change=change, event_update=event_update)

    def status(self) -> dict:
        return {
            "posture": self.posture.value,
            "current_rate": self.current_rate,
            "previous_rate": self.previous_rate,
            "baseline_rate": self.baseline_rate,
            "delta": self.delta,
            "events": len(self.tracker.events),
            "significant_changes": len(self.evaluator.changes),
            "delta_mode": self.delta_mode,
        }
