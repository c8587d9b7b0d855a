"""
Gathers one cycle's sites, clients and devices into a Metrics snapshot.

A failed fetch is logged and leaves its part of the snapshot empty; the
rest is still worth reporting. Only failing to start a batch ends the
cycle, since nothing can be written without one.
"""

from __future__ import annotations

import logging

from unipoller.controller.base import Controller
from unipoller.errors import AccumulatorInitError, FetchError
from unipoller.metrics import Metrics
from unipoller.sites import SiteFilter
from unipoller.storage.base import PointSink

log = logging.getLogger(__name__)


class MetricsCollector:

    def __init__(self, controller: Controller, site_filter: SiteFilter, sink: PointSink):
        self._controller = controller
        self._site_filter = site_filter
        self._sink = sink

    def collect_metrics(self) -> Metrics:
        metrics = Metrics()

        try:
            metrics.sites = self._site_filter.get_filtered_sites()
        except FetchError as e:
            log.error("Fetching sites failed: %s", e)

        try:
            metrics.clients = self._controller.fetch_clients(metrics.sites)
        except FetchError as e:
            log.error("Fetching clients failed: %s", e)

        try:
            metrics.devices = self._controller.fetch_devices(metrics.sites)
        except FetchError as e:
            log.error("Fetching devices failed: %s", e)

        try:
            metrics.batch = self._sink.new_batch()
        except AccumulatorInitError as e:
            log.error("Creating a new batch for %s failed: %s", self._sink.name(), e)
            raise

        return metrics
