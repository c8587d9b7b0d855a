"""
Base controller interface.

A controller is anything that can hand back sites, clients and devices.
This keeps the collector decoupled from where the data comes from
(a real UniFi controller, the mock, a recorded fixture, etc).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from unipoller.assets import Client, Site
from unipoller.metrics import Devices


class Controller(ABC):
    """Interface for all controller data sources.

    Every fetch raises FetchError when the data can't be retrieved.
    """

    @abstractmethod
    def fetch_sites(self) -> List[Site]:
        """Return every site the controller knows about."""
        ...

    @abstractmethod
    def fetch_clients(self, sites: List[Site]) -> List[Client]:
        """Return the connected clients on the given sites."""
        ...

    @abstractmethod
    def fetch_devices(self, sites: List[Site]) -> Devices:
        """Return the APs, gateways and switches on the given sites."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass
