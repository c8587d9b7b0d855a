"""
Client for a live UniFi controller. Logs in with a username and password,
keeps the session cookie, and reads the stat endpoints for each site.

Classic controllers serve the API at the root and log in at /api/login.
UniFi OS consoles (UDM, UDR, Cloud Key Gen2+) log in at /api/auth/login
and proxy the network API under /proxy/network.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from unipoller.assets import Client, Site
from unipoller.controller.base import Controller
from unipoller.errors import FetchError
from unipoller.metrics import Devices

log = logging.getLogger(__name__)


class UnifiController(Controller):

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        unifi_os: bool = False,
        verify_ssl: bool = True,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_url = self._base_url + "/proxy/network" if unifi_os else self._base_url
        self._login_url = self._base_url + ("/api/auth/login" if unifi_os else "/api/login")
        self._username = username
        self._password = password
        self._client = httpx.Client(verify=verify_ssl, timeout=timeout_seconds, transport=transport)
        self._logged_in = False

    def login(self):
        """Authenticate and store the session cookie on the client."""
        log.debug("Logging in to %s as %s", self._login_url, self._username)
        try:
            response = self._client.post(
                self._login_url,
                json={"username": self._username, "password": self._password},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(f"login to {self._base_url} failed: {e}") from e
        self._logged_in = True

    def _get(self, path: str) -> List[Dict[str, Any]]:
        if not self._logged_in:
            self.login()

        url = self._api_url + path
        try:
            response = self._client.get(url)
            if response.status_code == 401:
                # Session expired, log in again and retry once
                log.info("Controller session expired, re-authenticating")
                self.login()
                response = self._client.get(url)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise FetchError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"GET {path} returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise FetchError(f"GET {path} returned {type(body).__name__}, not an object")
        meta = body.get("meta") or {}
        if not isinstance(meta, dict):
            raise FetchError(f"GET {path} response has a malformed meta block")

        rc = meta.get("rc")
        if rc != "ok":
            msg = meta.get("msg", "unknown error")
            raise FetchError(f"GET {path} returned rc={rc!r}: {msg}")

        data = body.get("data")
        if not isinstance(data, list):
            raise FetchError(f"GET {path} response has no data list")
        return data

    def _get_site_records(self, sites: List[Site], endpoint: str) -> List[Dict[str, Any]]:
        """GET one stat endpoint for every site, tagging each record with its site."""
        records = []
        for site in sites:
            for data in self._get(f"/api/s/{site.name}/{endpoint}"):
                if not isinstance(data, dict) or "mac" not in data:
                    log.warning("Skipping %s record without a MAC on site %s", endpoint, site.name)
                    continue
                data["site_name"] = site.name
                records.append(data)
        return records

    def fetch_sites(self) -> List[Site]:
        sites = []
        for data in self._get("/api/stat/sites"):
            if not isinstance(data, dict) or "name" not in data:
                raise FetchError("site record without a name")
            sites.append(Site.from_api(data))
        return sites

    def fetch_clients(self, sites: List[Site]) -> List[Client]:
        return [Client.from_api(data) for data in self._get_site_records(sites, "stat/sta")]

    def fetch_devices(self, sites: List[Site]) -> Devices:
        return Devices.from_api(self._get_site_records(sites, "stat/device"))

    def name(self) -> str:
        return f"UniFi ({self._base_url})"

    def close(self):
        self._client.close()
