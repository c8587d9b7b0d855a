"""
Time-series points and the batch that carries them to a sink.

A Point is one measurement with tags and fields. BatchPoints collects
every point produced during a cycle so it can be written in one call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from unipoller.errors import AccumulatorInitError, PointProductionError

# Same precisions the InfluxDB line protocol accepts
PRECISIONS = ("n", "u", "ms", "s", "m", "h")

_FIELD_TYPES = (bool, int, float, str)


@dataclass
class Point:
    measurement: str
    tags: Dict[str, str]
    values: Dict[str, Any]
    time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def fields(self) -> Dict[str, Any]:
        """Return a copy of the field set, checking every value is storable."""
        for key, value in self.values.items():
            if not isinstance(value, _FIELD_TYPES):
                raise PointProductionError(
                    f"{self.measurement}: field {key!r} has unsupported type "
                    f"{type(value).__name__}"
                )
        return dict(self.values)

    def to_json(self) -> Dict[str, Any]:
        """Shape expected by InfluxDBClient.write_points()."""
        return {
            "measurement": self.measurement,
            "tags": dict(self.tags),
            "time": self.time.isoformat(),
            "fields": self.fields(),
        }


def new_point(
    measurement: str,
    tags: Dict[str, Any],
    values: Dict[str, Any],
    time: Optional[datetime] = None,
) -> Point:
    """Build a point, dropping empty tags and None fields.

    Raises PointProductionError when nothing is left to store.
    """
    if not measurement:
        raise PointProductionError("point has no measurement name")

    clean_tags = {k: str(v) for k, v in tags.items() if v is not None and v != ""}
    clean_values = {k: v for k, v in values.items() if v is not None}
    if not clean_values:
        raise PointProductionError(f"{measurement}: point has no fields")

    point = Point(measurement=measurement, tags=clean_tags, values=clean_values)
    if time is not None:
        point.time = time
    # Validate now so bad values surface at production time
    point.fields()
    return point


class BatchPoints:
    """Mutable accumulator for one cycle's points."""

    def __init__(self, database: str, precision: str = "s"):
        if not database:
            raise AccumulatorInitError("batch needs a database name")
        if precision not in PRECISIONS:
            raise AccumulatorInitError(f"unknown time precision: {precision!r}")
        self.database = database
        self.precision = precision
        self._points: List[Point] = []

    def add_point(self, point: Point):
        self._points.append(point)

    def add_points(self, points: Iterable[Point]):
        self._points.extend(points)

    def points(self) -> List[Point]:
        return list(self._points)

    def __len__(self) -> int:
        return len(self._points)


class PointProducer(ABC):
    """Anything polled from the controller that can become points."""

    @property
    @abstractmethod
    def entity_id(self) -> str:
        """Stable identifier used when reporting failures."""
        ...

    @abstractmethod
    def points(self) -> List[Point]:
        """Convert this entity into zero or more points."""
        ...
