"""Errors surfaced by the insights engine."""

from __future__ import annotations


class AnalysisUnavailableError(Exception):
    """The data source failed, so the analysis could not be computed.

    Raised instead of returning a silently truncated result. Callers are
    expected to retry or show a degraded-state message.
    """

    def __init__(self, analysis: str, reason: str):
        self.analysis = analysis
        self.reason = reason
        super().__init__(f"{analysis} unavailable: {reason}")


__all__ = ["AnalysisUnavailableError"]
