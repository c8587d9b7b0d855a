"""
Runtime configuration. Populated by the CLI from flags and UP_* env vars.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_MAX_ERRORS = 0
DEFAULT_INFLUX_DB = "unifi"


@dataclass
class PollerConfig:
    # "daemon" polls forever; anything containing "lambda" runs one cycle
    mode: str = "daemon"
    interval: float = DEFAULT_INTERVAL_SECONDS
    sites: List[str] = field(default_factory=lambda: ["all"])
    max_errors: int = DEFAULT_MAX_ERRORS

    # Controller
    unifi_url: str = "https://127.0.0.1:8443"
    unifi_user: str = "influx"
    unifi_pass: str = ""
    unifi_os: bool = False
    verify_ssl: bool = False

    # Sink
    sink: str = "influx"
    influx_url: str = "http://127.0.0.1:8086"
    influx_db: str = DEFAULT_INFLUX_DB
    influx_user: Optional[str] = None
    influx_pass: Optional[str] = None
    influx_verify_ssl: bool = True
    sqlite_path: str = "unipoller.db"

    @property
    def is_lambda(self) -> bool:
        return "lambda" in self.mode.lower()

