"""Engine configuration.

Plain dataclasses with the clinical defaults baked in.  Override them
from a JSON file, a dict, or constructor args.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from orthohr.errors import ConfigError


@dataclass
class PostureConfig:
    """Posture classifier settings.

    Attributes:
        stabilization_delay: Seconds a Standing -> Sitting change waits
            before it is confirmed.
        confirm_stationary_count: Consecutive stationary observations
            required when the stabilization delay expires.
        force_stationary_count: Consecutive stationary observations that
            force Sitting immediately.
        idle_timeout: Seconds without any observation before an implicit
            stationary signal is assumed.
        history_size: Observations kept for diagnostics.
    """

    stabilization_delay: float = 5.0
    confirm_stationary_count: int = 2
    force_stationary_count: int = 3
    idle_timeout: float = 120.0
    history_size: int = 10


@dataclass
class AccelConfig:
    """Accelerometer posture estimator settings."""

    window_sec: float = 10.0
    eval_interval: float = 10.0
    min_samples: int = 5
    max_samples: int = 64
    confidence_threshold: float = 0.7


@dataclass
class TrackerConfig:
    """Orthostatic event tracker settings (bpm and seconds)."""

    settle_time: float = 10.0
    elevation_threshold: int = 30
    recovery_margin: int = 10
    min_sustained: float = 30.0
    recovery_hold: float = 30.0
    pattern_window: float = 600.0
    max_events: int = 20


@dataclass
class AlertConfig:
    """Significant-change and alert settings."""

    minor_threshold: int = 30
    major_threshold: int = 50
    cooldown: float = 30.0
    max_changes: int = 50


@dataclass
class RecordingConfig:
    """Forward-throttle settings for transport/history collaborators.

    Attributes:
        recording_interval: Normal spacing between forwarded updates.
        significant_interval: Spacing used while in delta mode.
        settle_delta: Delta (bpm) under which delta mode is left.
    """

    recording_interval: float = 300.0
    significant_interval: float = 60.0
    settle_delta: int = 15


_SECTIONS = {
    "posture": PostureConfig,
    "accel": AccelConfig,
    "tracker": TrackerConfig,
    "alerts": AlertConfig,
    "recording": RecordingConfig,
}


@dataclass
class MonitorConfig:
    """Top-level configuration for :class:`orthohr.engine.MonitorEngine`."""

    posture: PostureConfig = field(default_factory=PostureConfig)
    accel: AccelConfig = field(default_factory=AccelConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    recording: RecordingConfig = field(default_factory=RecordingConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MonitorConfig:
        """Build a config from nested dicts, e.g. ``{"alerts": {"cooldown": 10}}``.

        Unknown sections or keys raise :class:`ConfigError` so typos do not
        silently fall back to defaults.
        """
        if not isinstance(data, dict):
            raise ConfigError(f"config must be a mapping, got {type(data).__name__}")

        kwargs: dict[str, Any] = {}
        for section, values in data.items():
            section_cls = _SECTIONS.get(section)
            if section_cls is None:
                raise ConfigError(f"unknown config section: {section!r}")
            if not isinstance(values, dict):
                raise ConfigError(f"section {section!r} must be a mapping")
            known = {f.name for f in fields(section_cls)}
            unknown = set(values) - known
            if unknown:
                raise ConfigError(
                    f"unknown key(s) in {section!r}: {', '.join(sorted(unknown))}"
                )
            kwargs[section] = section_cls(**values)
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path) -> MonitorConfig:
        """Load a JSON config file."""
        p = Path(path)
        try:
            with open(p) as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"config file not found: {p}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"invalid JSON in {p}: {e}") from e
        return cls.from_dict(data)
