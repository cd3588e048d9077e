"""Exceptions raised by orthohr.

The engine itself never raises on sensor input; malformed samples are
dropped.  Only configuration and strict replays surface errors.
"""


class OrthoHRError(Exception):
    """Base class for orthohr errors."""


class ConfigError(OrthoHRError):
    """Invalid or unreadable configuration."""


class ReplayError(OrthoHRError):
    """A session log line could not be parsed during a strict replay."""

    def __init__(self, line_num: int, reason: str):
        self.line_num = line_num
        self.reason = reason
        super().__init__(f"line {line_num}: {reason}")
