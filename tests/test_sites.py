"""Tests for resolving configured sites against the controller."""

import logging

import pytest

from fakes import FakeController
from unipoller.errors import FetchError
from unipoller.sites import SiteFilter

CONTROLLER_SITES = (("default", "Default"), ("ops", "Ops Team"), ("lab", "Lab"))


def _names(sites):
    return [s.name for s in sites]


def test_configured_subset_keeps_controller_order():
    controller = FakeController(sites=CONTROLLER_SITES)
    f = SiteFilter(controller, sites=["lab", "default"])
    assert _names(f.get_filtered_sites()) == ["default", "lab"]


def test_unknown_configured_sites_are_dropped():
    controller = FakeController(sites=CONTROLLER_SITES)
    f = SiteFilter(controller, sites=["ops", "missing"])
    assert _names(f.get_filtered_sites()) == ["ops"]


def test_all_sentinel_returns_everything():
    controller = FakeController(sites=CONTROLLER_SITES)
    f = SiteFilter(controller, sites=["ops", "all"])
    assert _names(f.get_filtered_sites()) == ["default", "ops", "lab"]


def test_empty_config_returns_everything():
    controller = FakeController(sites=CONTROLLER_SITES)
    f = SiteFilter(controller, sites=[])
    assert _names(f.get_filtered_sites()) == ["default", "ops", "lab"]


def test_filtered_sites_fetch_failure_raises():
    f = SiteFilter(FakeController(fail_sites=True), sites=["ops"])
    with pytest.raises(FetchError):
        f.get_filtered_sites()


def test_check_sites_collapses_all(caplog):
    controller = FakeController(sites=CONTROLLER_SITES)
    f = SiteFilter(controller, sites=["ops", "all", "missing"])
    with caplog.at_level(logging.INFO, logger="unipoller.sites"):
        f.check_sites()
    assert f.sites == ["all"]
    # No per-site warnings once "all" is configured
    assert not [r for r in caplog.records if r.levelno == logging.WARNING]


def test_check_sites_known_site_no_warning(caplog):
    controller = FakeController()
    f = SiteFilter(controller, sites=["ops"])
    with caplog.at_level(logging.INFO, logger="unipoller.sites"):
        f.check_sites()

    assert not [r for r in caplog.records if r.levelno == logging.WARNING]
    info = [r.getMessage() for r in caplog.records if r.levelno == logging.INFO]
    assert len(info) == 1
    assert "default (Default)" in info[0]
    assert "ops (Ops Team)" in info[0]

    filtered = f.get_filtered_sites()
    assert [(s.name, s.desc) for s in filtered] == [("ops", "Ops Team")]


def test_check_sites_warns_once_per_missing_site(caplog):
    f = SiteFilter(FakeController(), sites=["missing"])
    with caplog.at_level(logging.INFO, logger="unipoller.sites"):
        f.check_sites()

    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "missing" in warnings[0]
    assert f.sites == ["missing"]


def test_missing_sites_ignores_all_sentinel():
    controller = FakeController(sites=CONTROLLER_SITES)
    f = SiteFilter(controller, sites=["all", "ops", "gone", "also-gone"])
    assert f.missing_sites(controller.fetch_sites()) == ["gone", "also-gone"]
    assert f.missing_sites([]) == ["ops", "gone", "also-gone"]


def test_check_sites_skipped_in_lambda_mode():
    controller = FakeController(fail_sites=True)
    f = SiteFilter(controller, sites=["all", "ops"], mode="AWS-Lambda")
    f.check_sites()  # should not raise
    assert controller.site_fetches == 0
    assert f.sites == ["all", "ops"]


def test_check_sites_fetch_failure_raises():
    f = SiteFilter(FakeController(fail_sites=True), sites=["ops"])
    with pytest.raises(FetchError):
        f.check_sites()
