"""
Per-cycle snapshot of everything pulled from the controller.

A Metrics object is created by the collector, filled with points by the
reporter, and thrown away after the write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from unipoller.assets import DEVICE_CATEGORIES, UAP, USG, USW, Client, Device, Site
from unipoller.points import BatchPoints, Point

log = logging.getLogger(__name__)


@dataclass
class Devices:
    uaps: List[Optional[UAP]] = field(default_factory=list)
    usgs: List[Optional[USG]] = field(default_factory=list)
    usws: List[Optional[USW]] = field(default_factory=list)

    @classmethod
    def from_api(cls, records: Iterable[Dict[str, Any]]) -> "Devices":
        """Sort raw device records into their category by controller type."""
        devices = cls()
        for data in records:
            device_cls = DEVICE_CATEGORIES.get(data.get("type", ""))
            if device_cls is None:
                log.debug("Skipping device %s of unknown type %r", data.get("mac"), data.get("type"))
                continue
            devices.add(device_cls.from_api(data))
        return devices

    def add(self, device: Device):
        if device.CATEGORY is None:
            raise TypeError(f"not a device category: {type(device).__name__}")
        getattr(self, device.CATEGORY).append(device)

    def categories(self) -> Iterator[Tuple[str, List[Optional[Device]]]]:
        yield "uap", self.uaps
        yield "usg", self.usgs
        yield "usw", self.usws


@dataclass
class Metrics:
    """One cycle's worth of controller data.

    devices is None when the device fetch failed, which is not the same
    as a controller that has no devices.
    """

    sites: List[Optional[Site]] = field(default_factory=list)
    clients: List[Optional[Client]] = field(default_factory=list)
    devices: Optional[Devices] = None
    batch: Optional[BatchPoints] = None

    @property
    def uaps(self) -> List[Optional[UAP]]:
        return self.devices.uaps if self.devices is not None else []

    @property
    def usgs(self) -> List[Optional[USG]]:
        return self.devices.usgs if self.devices is not None else []

    @property
    def usws(self) -> List[Optional[USW]]:
        return self.devices.usws if self.devices is not None else []

    def points(self) -> List[Point]:
        return self.batch.points() if self.batch is not None else []
