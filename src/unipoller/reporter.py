"""
Turns a Metrics snapshot into points and writes them to the sink.

Point production is lenient: an entity that can't be converted is
recorded and logged, and every other entity's points still go out. A
failed write is the only thing that fails the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from unipoller.errors import PointProductionError, SinkError, WriteError
from unipoller.metrics import Metrics
from unipoller.points import BatchPoints, PointProducer
from unipoller.storage.base import PointSink

log = logging.getLogger(__name__)


@dataclass
class EntityFailure:
    entity_id: str
    error: PointProductionError


@dataclass
class PointsResult:
    visited: int = 0
    failures: List[EntityFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_ids(self) -> List[str]:
        return [f.entity_id for f in self.failures]


def _process_entity(entity: Optional[PointProducer], batch: BatchPoints) -> Optional[PointProductionError]:
    if entity is None:
        return None
    try:
        points = entity.points()
    except PointProductionError as e:
        return e
    if points:
        batch.add_points(points)
    return None


def _visit(entities: Iterable[Optional[PointProducer]], batch: BatchPoints, result: PointsResult):
    for entity in entities:
        result.visited += 1
        err = _process_entity(entity, batch)
        if err is not None:
            result.failures.append(EntityFailure(entity_id=entity.entity_id, error=err))


def process_points(metrics: Metrics) -> PointsResult:
    """Add every entity's points to the snapshot's batch.

    Devices are skipped entirely when the device fetch failed
    (metrics.devices is None).
    """
    if metrics.batch is None:
        raise ValueError("metrics has no batch to add points to")

    result = PointsResult()
    _visit(metrics.sites, metrics.batch, result)
    _visit(metrics.clients, metrics.batch, result)
    if metrics.devices is None:
        return result
    for _, devices in metrics.devices.categories():
        _visit(devices, metrics.batch, result)
    return result


class MetricsReporter:

    def __init__(self, sink: PointSink):
        self._sink = sink

    def report_metrics(self, metrics: Metrics) -> PointsResult:
        """Batch and write every point. Raises WriteError if the write fails."""
        result = process_points(metrics)
        for failure in result.failures:
            log.error("Building points for %s failed: %s", failure.entity_id, failure.error)

        try:
            self._sink.write(metrics.batch)
        except SinkError as e:
            raise WriteError(f"{self._sink.name()}.write(points): {e}") from e

        points = 0
        fields = 0
        for point in metrics.points():
            points += 1
            try:
                fields += len(point.fields())
            except PointProductionError:
                continue

        log.info(
            "UniFi Measurements Recorded. Sites: %d, Clients: %d, "
            "Wireless APs: %d, Gateways: %d, Switches: %d, Points: %d, Fields: %d",
            len(metrics.sites), len(metrics.clients), len(metrics.uaps),
            len(metrics.usgs), len(metrics.usws), points, fields,
        )
        return result
