"""
Mock UniFi controller.

Produces fake but plausible sites, clients and devices so we can develop
and test without a controller on the network. Counters grow every time
devices or clients are fetched, the way a real controller's would.
"""

from __future__ import annotations

import random
from typing import Any, Dict, List, Sequence, Tuple

from unipoller.assets import Client, Site
from unipoller.controller.base import Controller
from unipoller.metrics import Devices

DEFAULT_SITES: Tuple[Tuple[str, str], ...] = (
    ("default", "Default"),
    ("ops", "Ops Team"),
)


def _mac(rng: random.Random) -> str:
    return ":".join(f"{rng.randint(0, 255):02x}" for _ in range(6))


class MockController(Controller):
    """Seeded fake controller. Same seed, same inventory."""

    def __init__(
        self,
        seed: int = 42,
        sites: Sequence[Tuple[str, str]] = DEFAULT_SITES,
        clients_per_site: int = 6,
    ):
        self._rng = random.Random(seed)
        self._tick = 0
        self._site_defs = list(sites)
        self._clients_per_site = clients_per_site
        # Stable identities per site, generated once
        self._inventory: Dict[str, Dict[str, List[str]]] = {}
        for name, _ in self._site_defs:
            self._inventory[name] = {
                "clients": [_mac(self._rng) for _ in range(clients_per_site)],
                "uap": [_mac(self._rng) for _ in range(2)],
                "ugw": [_mac(self._rng)],
                "usw": [_mac(self._rng)],
            }

    def fetch_sites(self) -> List[Site]:
        sites = []
        for name, desc in self._site_defs:
            num_user = self._clients_per_site
            sites.append(Site.from_api({
                "name": name,
                "desc": desc,
                "health": [
                    {"subsystem": "wlan", "status": "ok", "num_user": num_user,
                     "num_ap": 2, "num_adopted": 2, "num_disconnected": 0,
                     "tx_bytes-r": self._rng.randint(1000, 90000),
                     "rx_bytes-r": self._rng.randint(1000, 90000)},
                    {"subsystem": "wan", "status": "ok", "num_gw": 1,
                     "num_adopted": 1, "gw_mac": self._inventory[name]["ugw"][0]},
                    {"subsystem": "lan", "status": "ok", "num_sw": 1,
                     "num_adopted": 1, "num_user": num_user},
                ],
            }))
        return sites

    def fetch_clients(self, sites: List[Site]) -> List[Client]:
        self._tick += 1
        clients = []
        for site in sites:
            inventory = self._inventory.get(site.name)
            if inventory is None:
                continue
            for i, mac in enumerate(inventory["clients"]):
                wired = i % 3 == 0
                clients.append(Client.from_api({
                    "mac": mac,
                    "site_name": site.name,
                    "hostname": f"host-{site.name}-{i}",
                    "ip": f"10.0.{len(clients) // 250}.{10 + len(clients) % 250}",
                    "oui": "Ubiquiti",
                    "is_wired": wired,
                    "is_guest": False,
                    "ap_mac": None if wired else inventory["uap"][i % 2],
                    "sw_mac": inventory["usw"][0] if wired else None,
                    "uptime": 60 * self._tick + i,
                    "rx_bytes": self._tick * self._rng.randint(10_000, 500_000),
                    "tx_bytes": self._tick * self._rng.randint(10_000, 500_000),
                    "signal": None if wired else self._rng.randint(-80, -40),
                    "rssi": None if wired else self._rng.randint(15, 60),
                }))
        return clients

    def fetch_devices(self, sites: List[Site]) -> Devices:
        records: List[Dict[str, Any]] = []
        for site in sites:
            inventory = self._inventory.get(site.name)
            if inventory is None:
                continue
            for dev_type in ("uap", "ugw", "usw"):
                for i, mac in enumerate(inventory[dev_type]):
                    records.append(self._device_record(site.name, dev_type, i, mac))
        return Devices.from_api(records)

    def _device_record(self, site_name: str, dev_type: str, index: int, mac: str) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "mac": mac,
            "site_name": site_name,
            "type": dev_type,
            "name": f"{dev_type}-{site_name}-{index}",
            "model": {"uap": "U7PG2", "ugw": "UGW3", "usw": "US24P250"}[dev_type],
            "version": "6.5.62",
            "ip": f"192.168.1.{2 + index}",
            "state": 1,
            "uptime": 3600 + 30 * self._tick,
            "rx_bytes": self._rng.randint(10**6, 10**9),
            "tx_bytes": self._rng.randint(10**6, 10**9),
            "num_sta": self._clients_per_site // 2,
            "system-stats": {
                "cpu": f"{self._rng.uniform(1, 40):.1f}",
                "mem": f"{self._rng.uniform(20, 80):.1f}",
            },
        }
        if dev_type == "uap":
            record["user-num_sta"] = self._clients_per_site // 2
            record["guest-num_sta"] = 0
        elif dev_type == "ugw":
            record["wan1"] = {
                "ip": "203.0.113.10",
                "rx_bytes": self._rng.randint(10**8, 10**10),
                "tx_bytes": self._rng.randint(10**8, 10**10),
            }
            record["speedtest-status"] = {"latency": self._rng.randint(5, 40)}
        else:
            record["port_table"] = [{"port_idx": p} for p in range(1, 25)]
            record["general_temperature"] = round(self._rng.uniform(35, 60), 1)
            record["fan_level"] = 0
        return record

    def name(self) -> str:
        return "Mock UniFi controller"
