"""Significant heart-rate changes and rate-limited alerts.

A jump of >= 30 bpm between consecutive samples is always recorded.
Alerts for those jumps are separately rate limited by a cooldown so the
wearer is not buzzed repeatedly during one noisy stretch.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from orthohr.config import AlertConfig
from orthohr.history import BoundedLog


class AlertSeverity(str, Enum):
    MINOR = "minor"
    MAJOR = "major"


@dataclass(frozen=True)
class SignificantChange:
    timestamp: float
    from_rate: int
    to_rate: int
    delta: int
    is_major: bool

    @property
    def description(self) -> str:
        arrow = "↑" if self.delta > 0 else "↓"
        return f"{arrow} {abs(self.delta)} BPM"


@dataclass(frozen=True)
class AlertRequest:
    """Request for a collaborator to notify the wearer (haptics, sound)."""

    timestamp: float
    from_rate: int
    to_rate: int
    delta: int
    severity: AlertSeverity

    @property
    def message(self) -> str:
        change = f"increased +{self.delta}" if self.delta > 0 else f"decreased {self.delta}"
        return f"Heart Rate\n{change}"


@dataclass(frozen=True)
class ChangeOutcome:
    change: SignificantChange | None = None
    alert: AlertRequest | None = None


def evaluate_change(
    previous_rate: int,
    current_rate: int,
    last_alert_at: float | None,
    now: float,
    config: AlertConfig | None = None,
) -> ChangeOutcome:
    """Classify one consecutive-sample delta.

    Args:
        previous_rate: Prior heart rate (bpm).
        current_rate: New heart rate (bpm).
        last_alert_at: Time of the last emitted alert, or None.
        now: Current time (s).
        config: Thresholds; defaults to :class:`AlertConfig`.

    Returns:
        The significant change record (if any) and the alert (if any).
    """
    cfg = config or AlertConfig()
    delta = current_rate - previous_rate
    abs_delta = abs(delta)

    if abs_delta < cfg.minor_threshold:
        return ChangeOutcome()

    is_major = abs_delta >= cfg.major_threshold
    change = SignificantChange(
        timestamp=now,
        from_rate=previous_rate,
        to_rate=current_rate,
        delta=delta,
        is_major=is_major,
    )

    if last_alert_at is not None and now - last_alert_at <= cfg.cooldown:
        return ChangeOutcome(change=change)

    alert = AlertRequest(
        timestamp=now,
        from_rate=previous_rate,
        to_rate=current_rate,
        delta=delta,
        severity=AlertSeverity.MAJOR if is_major else AlertSeverity.MINOR,
    )
    return ChangeOutcome(change=change, alert=alert)


class ChangeEvaluator:
    """Stateful wrapper owning the change log and the alert cooldown."""

    def __init__(self, config: AlertConfig | None = None):
        self.config = config or AlertConfig()
        self.changes: BoundedLog[SignificantChange] = BoundedLog(self.config.max_changes)
        self.last_alert_at: float | None = None
        self.alerts_emitted = 0

    def evaluate(self, previous_rate: int, current_rate: int, now: float) -> ChangeOutcome:
        if previous_rate <= 0 or current_rate <= 0:
            return ChangeOutcome()

        outcome = evaluate_change(previous_rate, current_rate, self.last_alert_at, now, self.config)

        if outcome.change is not None:
            self.changes.append(outcome.change)
            logger.info(
                f"Significant change: {outcome.change.delta:+d} BPM "
                f"({previous_rate}→{current_rate})"
            )
            if outcome.alert is None:
                logger.debug("Alert suppressed by cooldown")

        if outcome.alert is not None:
            self.last_alert_at = now
            self.alerts_emitted += 1
            logger.info(f"{outcome.alert.severity.value.capitalize()} alert: {outcome.alert.delta:+d} BPM")

        return outcome
