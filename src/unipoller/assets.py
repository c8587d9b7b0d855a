"""
Polled UniFi entities: sites, clients, and the three device families.

Each one is built from the controller's JSON with from_api() and turns
itself into points with points(). Keys the controller sends that we
don't model are ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, Dict, List, Optional

from unipoller.points import Point, PointProducer, new_point

log = logging.getLogger(__name__)


def _known_fields(data: Dict[str, Any], cls) -> Dict[str, Any]:
    """Keep only the keys that map onto cls's dataclass fields."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# Numeric health counters reported per subsystem (wlan, lan, wan, www, vpn)
SUBSYSTEM_FIELDS = (
    "num_user", "num_guest", "num_iot", "num_ap", "num_adopted",
    "num_disabled", "num_disconnected", "num_pending", "num_gw", "num_sw",
    "num_sta", "tx_bytes-r", "rx_bytes-r", "latency", "uptime", "drops",
    "xput_up", "xput_down", "speedtest_ping", "wan_ip", "gw_mac",
)


@dataclass
class Site(PointProducer):
    name: str
    desc: str = ""
    health: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Site":
        return cls(
            name=data["name"],
            desc=data.get("desc") or "",
            health=list(data.get("health") or []),
        )

    @property
    def entity_id(self) -> str:
        return self.name

    def points(self) -> List[Point]:
        result = []
        for sub in self.health:
            values = {k: sub.get(k) for k in SUBSYSTEM_FIELDS}
            if all(v is None for v in values.values()):
                # e.g. an unconfigured vpn subsystem: status only, no counters
                continue
            result.append(new_point(
                "subsystems",
                tags={
                    "site_name": self.name,
                    "desc": self.desc,
                    "subsystem": sub.get("subsystem"),
                    "status": sub.get("status"),
                },
                values=values,
            ))
        return result


@dataclass
class Client(PointProducer):
    mac: str
    site_name: str = ""
    name: Optional[str] = None
    hostname: Optional[str] = None
    ip: Optional[str] = None
    oui: Optional[str] = None
    ap_mac: Optional[str] = None
    sw_mac: Optional[str] = None
    essid: Optional[str] = None
    channel: Optional[int] = None
    is_wired: bool = False
    is_guest: bool = False
    uptime: Optional[int] = None
    rx_bytes: Optional[int] = None
    tx_bytes: Optional[int] = None
    rx_rate: Optional[int] = None
    tx_rate: Optional[int] = None
    signal: Optional[int] = None
    rssi: Optional[int] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Client":
        return cls(**_known_fields(data, cls))

    @property
    def entity_id(self) -> str:
        return self.mac

    def points(self) -> List[Point]:
        return [new_point(
            "clients",
            tags={
                "mac": self.mac,
                "site_name": self.site_name,
                "name": self.name or self.hostname,
                "oui": self.oui,
                "ap_mac": self.ap_mac,
                "sw_mac": self.sw_mac,
                "essid": self.essid,
                "is_wired": str(self.is_wired).lower(),
                "is_guest": str(self.is_guest).lower(),
            },
            values={
                "ip": self.ip,
                "hostname": self.hostname,
                "channel": self.channel,
                "uptime": self.uptime,
                "rx_bytes": self.rx_bytes,
                "tx_bytes": self.tx_bytes,
                "rx_rate": self.rx_rate,
                "tx_rate": self.tx_rate,
                "signal": self.signal,
                "rssi": self.rssi,
            },
        )]


@dataclass
class Device(PointProducer):
    """Fields shared by every UniFi network device."""

    MEASUREMENT: ClassVar[str] = "device"
    CATEGORY: ClassVar[Optional[str]] = None

    mac: str
    site_name: str = ""
    name: Optional[str] = None
    model: Optional[str] = None
    version: Optional[str] = None
    type: Optional[str] = None
    ip: Optional[str] = None
    state: Optional[int] = None
    uptime: Optional[int] = None
    rx_bytes: Optional[int] = None
    tx_bytes: Optional[int] = None
    num_sta: Optional[int] = None
    system_stats: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]):
        kwargs = _known_fields(data, Device)
        kwargs["system_stats"] = data.get("system-stats") or {}
        kwargs.update(cls._extra_from_api(data))
        return cls(**kwargs)

    @classmethod
    def _extra_from_api(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {}

    @property
    def entity_id(self) -> str:
        return self.mac

    def _extra_values(self) -> Dict[str, Any]:
        return {}

    def points(self) -> List[Point]:
        values = {
            "ip": self.ip,
            "state": self.state,
            "uptime": self.uptime,
            "rx_bytes": self.rx_bytes,
            "tx_bytes": self.tx_bytes,
            "num_sta": self.num_sta,
            # system-stats arrive as strings from the controller
            "cpu": _to_float(self.system_stats.get("cpu")),
            "mem": _to_float(self.system_stats.get("mem")),
        }
        values.update(self._extra_values())
        return [new_point(
            self.MEASUREMENT,
            tags={
                "mac": self.mac,
                "site_name": self.site_name,
                "name": self.name,
                "model": self.model,
                "version": self.version,
                "type": self.type,
            },
            values=values,
        )]


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        log.debug("Dropping non-numeric system stat: %r", value)
        return None


@dataclass
class UAP(Device):
    """Wireless access point."""

    MEASUREMENT = "uap"
    CATEGORY = "uaps"

    user_num_sta: Optional[int] = None
    guest_num_sta: Optional[int] = None

    @classmethod
    def _extra_from_api(cls, data):
        return {
            "user_num_sta": data.get("user-num_sta"),
            "guest_num_sta": data.get("guest-num_sta"),
        }

    def _extra_values(self):
        return {
            "user-num_sta": self.user_num_sta,
            "guest-num_sta": self.guest_num_sta,
        }


@dataclass
class USG(Device):
    """Security gateway."""

    MEASUREMENT = "usg"
    CATEGORY = "usgs"

    wan1: Dict[str, Any] = field(default_factory=dict)
    speedtest_status: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def _extra_from_api(cls, data):
        return {
            "wan1": data.get("wan1") or {},
            "speedtest_status": data.get("speedtest-status") or {},
        }

    def _extra_values(self):
        return {
            "wan-ip": self.wan1.get("ip"),
            "wan-rx_bytes": self.wan1.get("rx_bytes"),
            "wan-tx_bytes": self.wan1.get("tx_bytes"),
            "speedtest-status_ping": self.speedtest_status.get("latency"),
        }


@dataclass
class USW(Device):
    """Switch."""

    MEASUREMENT = "usw"
    CATEGORY = "usws"

    port_table: List[Dict[str, Any]] = field(default_factory=list)
    general_temperature: Optional[float] = None
    fan_level: Optional[int] = None

    @classmethod
    def _extra_from_api(cls, data):
        return {
            "port_table": list(data.get("port_table") or []),
            "general_temperature": data.get("general_temperature"),
            "fan_level": data.get("fan_level"),
        }

    def _extra_values(self):
        return {
            "port_count": len(self.port_table),
            "general_temperature": self.general_temperature,
            "fan_level": self.fan_level,
        }


# Controller "type" value -> device class. ugw and usg are both gateways.
DEVICE_CATEGORIES = {
    "uap": UAP,
    "ugw": USG,
    "usg": USG,
    "usw": USW,
}
