"""Heart-rate analytics driven by posture.

Modules:
    orthostatic -- Standing-episode tracking and orthostatic events
    changes     -- Significant heart-rate changes and alert rate limiting
    summary     -- Session summary aggregation
"""

from orthohr.analytics.orthostatic import (
    OrthostaticTracker,
    OrthostaticEvent,
    HeartRatePoint,
    EventUpdate,
    Severity,
    classify_severity,
)
from orthohr.analytics.changes import (
    ChangeEvaluator,
    evaluate_change,
    SignificantChange,
    AlertRequest,
    AlertSeverity,
)
from orthohr.analytics.summary import build_session_summary, SessionSummary

__all__ = [
    # orthostatic
    "OrthostaticTracker",
    "OrthostaticEvent",
    "HeartRatePoint",
    "EventUpdate",
    "Severity",
    "classify_severity",
    # changes
    "ChangeEvaluator",
    "evaluate_change",
    "SignificantChange",
    "AlertRequest",
    "AlertSeverity",
    # summary
    "build_session_summary",
    "SessionSummary",
]
