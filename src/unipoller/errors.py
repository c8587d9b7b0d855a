"""
Exception types raised by the poller.

Fetch and point errors are logged where they happen and never stop a
cycle. CycleError subclasses end the current cycle. ThresholdExceededError
ends the poll loop.
"""

from __future__ import annotations


class UnipollerError(Exception):
    """Base exception for unipoller errors."""

    pass


class FetchError(UnipollerError):
    """Raised when sites, clients or devices can't be read from the controller."""

    pass


class PointProductionError(UnipollerError):
    """Raised when an entity can't be turned into time-series points."""

    pass


class SinkError(UnipollerError):
    """Raised by a point sink when the database rejects a write."""

    pass


class CycleError(UnipollerError):
    """A failure that ends one collect-and-report cycle."""

    pass


class AccumulatorInitError(CycleError):
    """Raised when a new batch of points can't be created."""

    pass


class WriteError(CycleError):
    """Raised when a finished batch can't be written to the sink."""

    pass


class ThresholdExceededError(UnipollerError):
    """Raised by the poll loop once too many cycles have failed."""

    def __init__(self, error_count: int, max_errors: int):
        self.error_count = error_count
        self.max_errors = max_errors
        super().__init__(
            f"reached maximum error count, stopping poller ({error_count} > {max_errors})"
        )
