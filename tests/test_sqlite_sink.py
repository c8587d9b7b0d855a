"""Tests for the SQLite point sink."""

import os
import sqlite3
import tempfile
from datetime import datetime, timezone

import pytest

from unipoller.errors import SinkError
from unipoller.points import Point
from unipoller.storage.sqlite_sink import SCHEMA_VERSION, SQLiteSink


def _make_point(measurement="clients", **values) -> Point:
    return Point(
        measurement=measurement,
        tags={"mac": "aa:bb", "site_name": "default"},
        values=values or {"rx_bytes": 100},
        time=datetime.now(timezone.utc),
    )


def test_write_and_count():
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    try:
        sink = SQLiteSink(db_path=db_path)
        assert sink.count() == 0

        batch = sink.new_batch()
        batch.add_points([_make_point(), _make_point(), _make_point("uap", uptime=5)])
        sink.write(batch)

        assert sink.count() == 3
        assert sink.count(measurement="uap") == 1
        sink.close()
    finally:
        os.unlink(db_path)


def test_roundtrip_preserves_tags_and_fields(tmp_path):
    sink = SQLiteSink(db_path=str(tmp_path / "points.db"))
    batch = sink.new_batch()
    batch.add_point(_make_point("usg", **{"wan-ip": "203.0.113.1", "uptime": 42, "cpu": 3.5}))
    sink.write(batch)

    [loaded] = sink.get_recent(minutes=10)
    assert loaded.measurement == "usg"
    assert loaded.tags == {"mac": "aa:bb", "site_name": "default"}
    assert loaded.fields() == {"wan-ip": "203.0.113.1", "uptime": 42, "cpu": 3.5}
    sink.close()


def test_get_recent_filters_by_measurement(tmp_path):
    sink = SQLiteSink(db_path=str(tmp_path / "points.db"))
    batch = sink.new_batch()
    batch.add_points([_make_point("clients", rx_bytes=i) for i in range(3)])
    batch.add_point(_make_point("usw", port_count=24))
    sink.write(batch)

    clients = sink.get_recent(minutes=10, measurement="clients")
    assert [p.fields()["rx_bytes"] for p in clients] == [0, 1, 2]
    sink.close()


def test_unwritable_point_raises_sink_error(tmp_path):
    sink = SQLiteSink(db_path=str(tmp_path / "points.db"))
    batch = sink.new_batch()
    batch.add_point(Point(measurement="clients", tags={}, values={"bad": object()}))

    with pytest.raises(SinkError):
        sink.write(batch)
    assert sink.count() == 0
    sink.close()


def test_write_after_close_raises_sink_error(tmp_path):
    sink = SQLiteSink(db_path=str(tmp_path / "points.db"))
    batch = sink.new_batch()
    batch.add_point(_make_point())
    sink.close()

    with pytest.raises(SinkError):
        sink.write(batch)


def test_reopen_keeps_rows_and_version_stamp(tmp_path):
    db_path = str(tmp_path / "points.db")
    sink = SQLiteSink(db_path=db_path, database="home")
    batch = sink.new_batch()
    batch.add_point(_make_point())
    sink.write(batch)
    sink.close()

    sink = SQLiteSink(db_path=db_path, database="home")
    assert sink.count() == 1
    sink.close()

    conn = sqlite3.connect(db_path)
    assert conn.execute("SELECT version FROM schema_version").fetchall() == [(SCHEMA_VERSION,)]
    assert conn.execute("SELECT database FROM points").fetchone()[0] == "home"
    conn.close()
