"""
InfluxDB 1.x sink. Sends each batch with a single write_points() call.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import requests
from influxdb import InfluxDBClient
from influxdb.exceptions import InfluxDBClientError, InfluxDBServerError

from unipoller.errors import PointProductionError, SinkError
from unipoller.points import BatchPoints
from unipoller.storage.base import PointSink

log = logging.getLogger(__name__)


def client_from_url(
    url: str,
    database: str,
    username: Optional[str] = None,
    password: Optional[str] = None,
    verify_ssl: bool = True,
) -> InfluxDBClient:
    """Build an InfluxDBClient from a http(s)://host:port URL."""
    parsed = urlparse(url)
    ssl = parsed.scheme == "https"
    return InfluxDBClient(
        host=parsed.hostname or "localhost",
        port=parsed.port or 8086,
        username=username or "root",
        password=password or "root",
        database=database,
        ssl=ssl,
        verify_ssl=verify_ssl if ssl else False,
    )


class InfluxSink(PointSink):

    def __init__(
        self,
        client: InfluxDBClient,
        database: str,
        precision: str = "s",
        url: str = "",
    ):
        super().__init__(database=database, precision=precision)
        self._client = client
        self._url = url

    def write(self, batch: BatchPoints):
        try:
            body = [p.to_json() for p in batch.points()]
        except PointProductionError as e:
            raise SinkError(f"batch holds an unwritable point: {e}") from e
        if not body:
            log.debug("Empty batch, nothing to send to InfluxDB")
            return
        try:
            self._client.write_points(
                body,
                database=batch.database,
                time_precision=batch.precision,
            )
        except (InfluxDBClientError, InfluxDBServerError, requests.exceptions.RequestException) as e:
            raise SinkError(f"InfluxDB rejected {len(body)} points: {e}") from e
        log.debug("Sent %d points to InfluxDB database %s", len(body), batch.database)

    def name(self) -> str:
        return f"InfluxDB ({self._url or self.database})"

    def close(self):
        self._client.close()
