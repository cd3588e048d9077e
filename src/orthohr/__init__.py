"""orthohr: posture-aware heart-rate response detection for wrist wearables."""

__version__ = "0.1.0"
