"""Advisory posture estimate from wrist accelerometer windows.

Used only when the activity classifier is silent or unsure.  Every
``eval_interval`` seconds (once enough samples are buffered) the last
``window_sec`` seconds of x/y/z/magnitude are reduced to per-axis mean,
variance and range, and scored:

    score = 0.40 * vertical + 0.30 * movement + 0.20 * arm_angle + 0.10 * range

Each component lies in [0, 1]; a score above 0.5 means standing.  The
estimator only flips its posture when ``|score - 0.5| * 2`` exceeds the
confidence threshold.

Axis convention (watch frame, in g): x runs along the forearm, y across
the wrist, z out of the watch face.  With the arm hanging at the side
gravity lies mostly on x; with the wrist resting on a lap or desk it lies
mostly on z.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field

import numpy as np
from loguru import logger

from orthohr.config import AccelConfig
from orthohr.posture.activity import Posture

WEIGHT_VERTICAL = 0.40
WEIGHT_MOVEMENT = 0.30
WEIGHT_ARM_ANGLE = 0.20
WEIGHT_RANGE = 0.10

# Magnitude variance (g^2) treated as full-scale movement
MOVEMENT_VAR_FULL = 0.02
# Summed per-axis range (g) treated as full-scale range of motion
RANGE_FULL = 1.5


@dataclass
class AccelSample:
    """A single accelerometer reading."""

    x: float  # g
    y: float  # g
    z: float  # g
    timestamp: float = 0.0

    @property
    def magnitude(self) -> float:
        return (self.x ** 2 + self.y ** 2 + self.z ** 2) ** 0.5

    def __repr__(self) -> str:
        return f"Accel(x={self.x:.3f}g, y={self.y:.3f}g, z={self.z:.3f}g, mag={self.magnitude:.3f}g)"


@dataclass
class AxisStats:
    mean: float
    var: float
    range: float


@dataclass
class WindowFeatures:
    """Per-axis statistics for one evaluation window."""

    x: AxisStats
    y: AxisStats
    z: AxisStats
    magnitude: AxisStats
    n_samples: int


@dataclass
class PostureEstimate:
    """Result of one window evaluation."""

    posture: Posture
    score: float
    confidence: float
    timestamp: float
    components: dict[str, float] = field(default_factory=dict)
    flipped: bool = False

    def __repr__(self) -> str:
        return (
            f"PostureEstimate({self.posture.value}, score={self.score:.2f}, "
            f"conf={self.confidence:.2f}{', flipped' if self.flipped else ''})"
        )


def _axis_stats(values: np.ndarray) -> AxisStats:
    return AxisStats(
        mean=float(np.mean(values)),
        var=float(np.var(values, ddof=0)),
        range=float(np.ptp(values)),
    )


def window_features(samples: list[AccelSample]) -> WindowFeatures:
    """Reduce a window of samples to per-axis mean/variance/range."""
    if not samples:
        raise ValueError("window_features needs at least one sample")
    arr = np.asarray([(s.x, s.y, s.z) for s in samples], dtype=np.float64)
    mags = np.sqrt(np.sum(arr ** 2, axis=1))
    return WindowFeatures(
        x=_axis_stats(arr[:, 0]),
        y=_axis_stats(arr[:, 1]),
        z=_axis_stats(arr[:, 2]),
        magnitude=_axis_stats(mags),
        n_samples=len(samples),
    )


def _clip01(value: float) -> float:
    return float(np.clip(value, 0.0, 1.0))


def score_components(features: WindowFeatures) -> dict[str, float]:
    """Compute the four standing-likelihood sub-scores, each in [0, 1]."""
    gx = abs(features.x.mean)
    gz = abs(features.z.mean)
    # Share of gravity along the forearm versus the face normal
    vertical = _clip01(gx / (gx + gz)) if gx + gz > 1e-6 else 0.5

    movement = _clip01(features.magnitude.var / MOVEMENT_VAR_FULL)

    # Arm hanging straight keeps the lateral axis near zero
    arm_angle = _clip01(1.0 - abs(features.y.mean))

    total_range = features.x.range + features.y.range + features.z.range
    rom = _clip01(total_range / RANGE_FULL)

    return {
        "vertical": round(vertical, 4),
        "movement": round(movement, 4),
        "arm_angle": round(arm_angle, 4),
        "range": round(rom, 4),
    }


def posture_score(components: dict[str, float]) -> float:
    return _clip01(
        WEIGHT_VERTICAL * components["vertical"]
        + WEIGHT_MOVEMENT * components["movement"]
        + WEIGHT_ARM_ANGLE * components["arm_angle"]
        + WEIGHT_RANGE * components["range"]
    )


class AccelPostureEstimator:
    """Rolling-window accelerometer posture estimator (~1 Hz input)."""

    def __init__(self, config: AccelConfig | None = None, initial: Posture = Posture.SITTING):
        self.config = config or AccelConfig()
        self.posture = initial
        self._window: deque[AccelSample] = deque(maxlen=self.config.max_samples)
        self._last_eval_at: float | None = None

    def __len__(self) -> int:
        return len(self._window)

    def add(self, x: float, y: float, z: float, timestamp: float) -> PostureEstimate | None:
        """Buffer one reading; returns an estimate when a window is evaluated."""
        try:
            sample = AccelSample(float(x), float(y), float(z), float(timestamp))
        except (TypeError, ValueError):
            logger.debug(f"Ignoring malformed accelerometer sample: {(x, y, z, timestamp)!r}")
            return None
        if not all(np.isfinite([sample.x, sample.y, sample.z, sample.timestamp])):
            logger.debug("Ignoring non-finite accelerometer sample")
            return None

        self._window.append(sample)
        cutoff = timestamp - self.config.window_sec
        while self._window and self._window[0].timestamp < cutoff:
            self._window.popleft()

        if len(self._window) < self.config.min_samples:
            return None
        if self._last_eval_at is not None and timestamp - self._last_eval_at < self.config.eval_interval:
            return None

        self._last_eval_at = timestamp
        return self._evaluate(timestamp)

    def _evaluate(self, now: float) -> PostureEstimate:
        features = window_features(list(self._window))
        components = score_components(features)
        score = posture_score(components)
        confidence = round(abs(score - 0.5) * 2.0, 4)
        candidate = Posture.STANDING if score > 0.5 else Posture.SITTING

        flipped = False
        if confidence > self.config.confidence_threshold and candidate != self.posture:
            logger.debug(
                f"Accelerometer posture {self.posture.value} -> {candidate.value} "
                f"(score={score:.2f}, conf={confidence:.2f})"
            )
            self.posture = candidate
            flipped = True

        return PostureEstimate(
            posture=candidate,
            score=round(score, 4),
            confidence=confidence,
            timestamp=now,
            components=components,
            flipped=flipped,
        )

    def reset(self, posture: Posture | None = None) -> None:
        self._window.clear()
        self._last_eval_at = None
        if posture is not None:
            self.posture = posture
