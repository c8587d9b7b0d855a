"""
SQLite sink for running without an InfluxDB server. One row per point,
tags and fields stored as JSON. Good for local testing and for keeping a
short history on a laptop.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from unipoller.errors import PointProductionError, SinkError
from unipoller.points import BatchPoints, Point
from unipoller.storage.base import PointSink

log = logging.getLogger(__name__)

DEFAULT_DB_PATH = "unipoller.db"

SCHEMA_VERSION = 1


class SQLiteSink(PointSink):

    def __init__(self, db_path: str = DEFAULT_DB_PATH, database: str = "unifi", precision: str = "s"):
        super().__init__(database=database, precision=precision)
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path)
        # WAL mode lets a second process read while the poller writes
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._ensure_version_table()
        self._create_table()

    def _ensure_version_table(self):
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER NOT NULL
            )
        """)
        row = self._conn.execute("SELECT version FROM schema_version").fetchone()
        if row is None:
            self._conn.execute("INSERT INTO schema_version (version) VALUES (?)", (0,))
            self._conn.commit()

    def _get_version(self) -> int:
        row = self._conn.execute("SELECT version FROM schema_version").fetchone()
        return row[0] if row else 0

    def _set_version(self, version: int):
        self._conn.execute("UPDATE schema_version SET version = ?", (version,))

    def _create_table(self):
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS points (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TEXT NOT NULL,
                measurement TEXT NOT NULL,
                tags TEXT NOT NULL,
                fields TEXT NOT NULL,
                database TEXT NOT NULL DEFAULT ''
            )
        """)
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_points_ts ON points (timestamp)"
        )
        if self._get_version() < SCHEMA_VERSION:
            self._set_version(SCHEMA_VERSION)
        self._conn.commit()

    def write(self, batch: BatchPoints):
        try:
            rows = [
                (
                    p.time.astimezone(timezone.utc).isoformat(),
                    p.measurement,
                    json.dumps(p.tags, sort_keys=True),
                    json.dumps(p.fields(), sort_keys=True),
                    batch.database,
                )
                for p in batch.points()
            ]
        except PointProductionError as e:
            raise SinkError(f"batch holds an unwritable point: {e}") from e

        try:
            with self._conn:
                self._conn.executemany(
                    """
                    INSERT INTO points (timestamp, measurement, tags, fields, database)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            raise SinkError(f"SQLite write to {self._db_path} failed: {e}") from e
        log.debug("Stored %d points in %s", len(rows), self._db_path)

    def get_recent(self, minutes: int = 10, measurement: Optional[str] = None) -> List[Point]:
        """Pull points from the last N minutes, oldest first.

        Timestamps are stored as UTC ISO strings. The cutoff is computed
        in Python using UTC to match.
        """
        cutoff = (datetime.now(timezone.utc) - timedelta(minutes=minutes)).isoformat()
        query = "SELECT timestamp, measurement, tags, fields FROM points WHERE timestamp >= ?"
        params = [cutoff]
        if measurement is not None:
            query += " AND measurement = ?"
            params.append(measurement)
        query += " ORDER BY timestamp ASC, id ASC"

        return [
            Point(
                measurement=row[1],
                tags=json.loads(row[2]),
                values=json.loads(row[3]),
                time=datetime.fromisoformat(row[0]),
            )
            for row in self._conn.execute(query, params).fetchall()
        ]

    def count(self, measurement: Optional[str] = None) -> int:
        if measurement is None:
            cursor = self._conn.execute("SELECT COUNT(*) FROM points")
        else:
            cursor = self._conn.execute(
                "SELECT COUNT(*) FROM points WHERE measurement = ?", (measurement,)
            )
        return cursor.fetchone()[0]

    def name(self) -> str:
        return f"SQLite ({self._db_path})"

    def close(self):
        self._conn.close()
