"""
Resolve the configured site names against the controller's site list.

"all" anywhere in the configured list means every site. Names the
controller doesn't know are warned about once at startup and then
quietly skipped each cycle; the site may be created later.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from unipoller.assets import Site
from unipoller.controller.base import Controller

log = logging.getLogger(__name__)

ALL_SITES = "all"


class SiteFilter:

    def __init__(self, controller: Controller, sites: Optional[List[str]] = None, mode: str = ""):
        self._controller = controller
        self.sites: List[str] = list(sites or [])
        self._mode = mode

    def check_sites(self):
        """Make sure the configured sites exist on the controller.

        Does nothing in lambda (run-once) mode. Raises FetchError if the
        site list can't be read.
        """
        if "lambda" in self._mode.lower():
            return

        sites = self._controller.fetch_sites()
        found = ", ".join(f"{s.name} ({s.desc})" for s in sites)
        log.info("Found %d site(s) on controller: %s", len(sites), found)

        if ALL_SITES in self.sites:
            self.sites = [ALL_SITES]
            return

        for name in self.missing_sites(sites):
            log.warning("Configured site not found on controller: %s", name)

    def missing_sites(self, sites: List[Site]) -> List[str]:
        """Configured site names that are not in sites. "all" is never missing."""
        known = {s.name for s in sites}
        return [name for name in self.sites if name != ALL_SITES and name not in known]

    def get_filtered_sites(self) -> List[Site]:
        """Return the controller's sites that are configured, in controller order.

        Raises FetchError if the site list can't be read.
        """
        sites = self._controller.fetch_sites()
        if not self.sites or ALL_SITES in self.sites:
            return sites

        wanted = set(self.sites)
        i = 0
        for site in sites:
            if site.name in wanted:
                sites[i] = site
                i += 1
        del sites[i:]
        return sites
