"""
Base sink interface.

A sink is anything that can take a finished BatchPoints and persist it.
The collector asks the sink for an empty batch at the start of each
cycle and the reporter hands it back full.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from unipoller.points import BatchPoints


class PointSink(ABC):

    def __init__(self, database: str, precision: str = "s"):
        self.database = database
        self.precision = precision

    def new_batch(self) -> BatchPoints:
        """Start an empty batch. Raises AccumulatorInitError on bad settings."""
        return BatchPoints(database=self.database, precision=self.precision)

    @abstractmethod
    def write(self, batch: BatchPoints):
        """Persist every point in the batch. Raises SinkError on failure."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this sink."""
        ...

    def close(self):
        pass
