"""Tests for the poll loop, its error threshold, and the interval ticker."""

import itertools

import pytest

from fakes import FakeController, FakeSink
from unipoller.collector import MetricsCollector
from unipoller.errors import AccumulatorInitError, ThresholdExceededError, WriteError
from unipoller.poller import Poller, PollLoop, PollState, interval_ticker
from unipoller.reporter import MetricsReporter
from unipoller.sites import SiteFilter


def _make_poller(controller=None, sink=None, max_errors=0, ticker=None, mode="daemon", sites=("all",)):
    controller = controller or FakeController()
    sink = sink or FakeSink()
    site_filter = SiteFilter(controller, sites=list(sites), mode=mode)
    collector = MetricsCollector(controller, site_filter, sink)
    reporter = MetricsReporter(sink)
    loop = PollLoop(collector, reporter, interval=30, max_errors=max_errors, ticker=ticker)
    return Poller(site_filter, collector, reporter, loop, lambda_mode="lambda" in mode.lower())


def test_poll_state_threshold():
    state = PollState(max_errors=2)
    state.record_failure()
    state.record_failure()
    assert not state.exceeded
    state.record_failure()
    assert state.exceeded


def test_negative_max_errors_never_exceeded():
    state = PollState(max_errors=-1, error_count=10_000)
    assert not state.exceeded


def test_stops_after_three_failures_with_max_two():
    sink = FakeSink(fail_write=True)
    poller = _make_poller(sink=sink, max_errors=2, ticker=itertools.count())

    with pytest.raises(ThresholdExceededError) as exc_info:
        poller.loop.run()

    assert poller.loop.state.error_count == 3
    assert exc_info.value.error_count == 3
    assert exc_info.value.max_errors == 2
    assert "3 > 2" in str(exc_info.value)


def test_two_failures_do_not_stop_with_max_two():
    poller = _make_poller(sink=FakeSink(fail_write=True), max_errors=2, ticker=range(2))
    poller.loop.run()  # ticker runs out, no exception
    assert poller.loop.state.error_count == 2


def test_unlimited_errors_keep_polling():
    poller = _make_poller(sink=FakeSink(fail_write=True), max_errors=-1, ticker=range(50))
    poller.loop.run()
    assert poller.loop.state.error_count == 50


def test_successful_cycles_do_not_count():
    sink = FakeSink()
    poller = _make_poller(sink=sink, max_errors=0, ticker=range(3))
    poller.loop.run()
    assert poller.loop.state.error_count == 0
    assert len(sink.written) == 3


def test_error_count_is_total_not_consecutive():
    sink = FakeSink()
    poller = _make_poller(sink=sink, max_errors=1, ticker=itertools.count())

    def flaky_ticks():
        for i in itertools.count():
            # fail on ticks 0 and 2, succeed in between
            sink.fail_write = i % 2 == 0
            yield i

    poller.loop._ticker = flaky_ticks()
    with pytest.raises(ThresholdExceededError):
        poller.loop.run()
    assert len(sink.written) == 1


def test_batch_init_failure_counts_as_error():
    poller = _make_poller(sink=FakeSink(precision="bogus"), max_errors=0, ticker=range(5))
    with pytest.raises(ThresholdExceededError):
        poller.loop.run()
    assert poller.loop.state.error_count == 1


def test_fetch_failures_alone_do_not_count():
    controller = FakeController(fail_clients=True, fail_devices=True)
    poller = _make_poller(controller=controller, max_errors=0, ticker=range(3))
    poller.loop.run()
    assert poller.loop.state.error_count == 0


def test_interval_rounded_to_whole_seconds():
    poller = _make_poller()
    loop = PollLoop(poller._collector, poller._reporter, interval=29.6)
    assert loop.interval == 30.0
    assert PollLoop(poller._collector, poller._reporter, interval=0.2).interval == 1.0


def test_lambda_mode_runs_once_without_site_check():
    controller = FakeController()
    sink = FakeSink()
    poller = _make_poller(controller=controller, sink=sink, mode="lambda", ticker=range(10))
    poller.start()

    assert len(sink.written) == 1
    # Only the per-cycle site query, no startup check
    assert controller.site_fetches == 1


def test_lambda_mode_propagates_write_error():
    poller = _make_poller(sink=FakeSink(fail_write=True), mode="Lambda")
    with pytest.raises(WriteError):
        poller.start()


def test_lambda_mode_propagates_batch_error():
    poller = _make_poller(sink=FakeSink(precision="nope"), mode="lambda")
    with pytest.raises(AccumulatorInitError):
        poller.start()


def test_daemon_start_checks_sites_then_polls():
    controller = FakeController()
    sink = FakeSink()
    poller = _make_poller(controller=controller, sink=sink, ticker=range(2), sites=("ops", "all"))
    poller.start()

    assert poller.site_filter.sites == ["all"]
    # one startup check plus one query per tick
    assert controller.site_fetches == 3
    assert len(sink.written) == 2


class _FakeClock:

    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_ticker_waits_one_interval_between_ticks():
    clock = _FakeClock()
    ticks = interval_ticker(10, sleep=clock.sleep, clock=clock.time)

    next(ticks)
    clock.now += 2  # work takes 2s
    next(ticks)

    assert clock.sleeps == [10, 8]


def test_ticker_overrun_delays_next_tick():
    clock = _FakeClock()
    ticks = interval_ticker(10, sleep=clock.sleep, clock=clock.time)

    assert next(ticks) == 1
    clock.now += 25  # cycle ran long
    assert next(ticks) == 2  # fires immediately, not dropped
    assert clock.sleeps == [10]
    next(ticks)
    assert clock.sleeps == [10, 10]
