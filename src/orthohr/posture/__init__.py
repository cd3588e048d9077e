"""Posture detection from motion-activity reports and accelerometer windows."""

from orthohr.posture.activity import (
    ActivityKind,
    Confidence,
    Posture,
    PostureChanged,
    PostureClassifier,
    PostureSample,
    PostureState,
)
from orthohr.posture.accel import AccelPostureEstimator, AccelSample, PostureEstimate

__all__ = [
    "ActivityKind",
    "Confidence",
    "Posture",
    "PostureChanged",
    "PostureClassifier",
    "PostureSample",
    "PostureState",
    "AccelPostureEstimator",
    "AccelSample",
    "PostureEstimate",
]
