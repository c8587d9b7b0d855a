"""
The poll loop: collect, report, repeat on a fixed interval.

Each tick runs one full cycle before the next one starts. A cycle that
overruns the interval delays the following tick; ticks are never
skipped or run side by side. Failed cycles are counted, and once the
count passes max_errors the loop gives up.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

from unipoller.collector import MetricsCollector
from unipoller.errors import CycleError, ThresholdExceededError, WriteError
from unipoller.reporter import MetricsReporter, PointsResult
from unipoller.sites import SiteFilter

log = logging.getLogger(__name__)


@dataclass
class PollState:
    max_errors: int = 0
    error_count: int = 0

    def record_failure(self):
        self.error_count += 1

    @property
    def exceeded(self) -> bool:
        # Negative max_errors means never stop on errors
        return self.max_errors >= 0 and self.error_count > self.max_errors


def interval_ticker(
    interval: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Iterator[int]:
    """Yield once per interval, forever.

    The first tick fires one interval after the generator starts. If the
    consumer overruns a deadline the next tick fires straight away and
    the schedule restarts from there.
    """
    tick = 0
    deadline = clock() + interval
    while True:
        delay = deadline - clock()
        if delay > 0:
            sleep(delay)
        tick += 1
        yield tick
        deadline += interval
        now = clock()
        if deadline < now:
            deadline = now


def collect_and_report(collector: MetricsCollector, reporter: MetricsReporter) -> PointsResult:
    """Run one cycle. Raises CycleError if nothing could be written."""
    metrics = collector.collect_metrics()
    try:
        return reporter.report_metrics(metrics)
    except WriteError as e:
        log.error("Reporting metrics failed: %s", e)
        raise


class PollLoop:

    def __init__(
        self,
        collector: MetricsCollector,
        reporter: MetricsReporter,
        interval: float,
        max_errors: int = 0,
        ticker: Optional[Iterable[object]] = None,
    ):
        self._collector = collector
        self._reporter = reporter
        self.interval = float(max(1, round(interval)))
        self.state = PollState(max_errors=max_errors)
        self._ticker = ticker

    def collect_and_report(self) -> PointsResult:
        return collect_and_report(self._collector, self._reporter)

    def run(self):
        """Poll until the error threshold is crossed.

        Raises ThresholdExceededError when it is. Returns normally only if
        a finite ticker was supplied and ran out.
        """
        ticker = self._ticker if self._ticker is not None else interval_ticker(self.interval)
        log.info("Everything checks out! Poller started, interval: %ds", self.interval)

        for _ in ticker:
            try:
                self.collect_and_report()
            except CycleError:
                self.state.record_failure()

            if self.state.exceeded:
                raise ThresholdExceededError(self.state.error_count, self.state.max_errors)


class Poller:
    """Wires the site check, the collector and the poll loop together."""

    def __init__(
        self,
        site_filter: SiteFilter,
        collector: MetricsCollector,
        reporter: MetricsReporter,
        loop: PollLoop,
        lambda_mode: bool = False,
    ):
        self.site_filter = site_filter
        self._collector = collector
        self._reporter = reporter
        self.loop = loop
        self._lambda_mode = lambda_mode

    def start(self):
        """Run once in lambda mode, otherwise check sites and poll forever.

        Raises FetchError if the startup site check can't reach the
        controller, CycleError if a lambda run fails, and
        ThresholdExceededError if the loop gives up.
        """
        if self._lambda_mode:
            log.info("Lambda mode: running a single collection")
            collect_and_report(self._collector, self._reporter)
            return

        self.site_filter.check_sites()
        self.loop.run()
