"""Error taxonomy for snapshot and export runs."""

from __future__ import annotations


class TopicSnapError(Exception):
    """Base error. Carries the timespan label and failing stage when known."""

    def __init__(self, message: str, *, timespan: str | None = None, stage: str | None = None) -> None:
        super().__init__(message)
        self.timespan = timespan
        self.stage = stage

    def add_context(self, *, timespan: str | None = None, stage: str | None = None) -> None:
        """Fill in context without overwriting what a deeper layer already set."""
        if self.timespan is None:
            self.timespan = timespan
        if self.stage is None:
            self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        context = [
            f"{name}={value}"
            for name, value in (("timespan", self.timespan), ("stage", self.stage))
            if value
        ]
        if context:
            return f"{message} [{', '.join(context)}]"
        return message


class ConfigurationError(TopicSnapError):
    """Invalid period, malformed focus query or other bad input. Always fatal."""


class TransientBackendError(TopicSnapError):
    """The search index failed in a way that may succeed on retry."""


class FatalAggregationError(TopicSnapError):
    """A recoverable failure exceeded its retry budget."""


class LayoutUnavailable(TopicSnapError):
    """The layout service could not produce positions."""


class IntegrityError(TopicSnapError):
    """Persisted state does not match what a completed step should have written."""
