import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import httpx

from .config import settings
from .models import Site, SiteConfig, SiteConfigError, SiteGroup, StatusCategory
from .monitor import SiteMonitor

logger = logging.getLogger(__name__)


class MissingPrimaryError(SiteConfigError):
    """A group has only mirror sites."""


class DuplicatePrimaryError(SiteConfigError):
    """A group has more than one non-mirror site."""


def partition_sites(sites: Iterable[Site], group_descriptions: Optional[Mapping[str, str]] = None) -> List[SiteGroup]:
    """Group sites by their ``group`` label.

    Groups come out in first-seen order and mirrors keep their list order.
    Every group needs exactly one non-mirror site; anything else raises a
    SiteConfigError subclass naming the group.
    """
    descriptions = group_descriptions or {}
    grouped: Dict[str, List[Site]] = {}
    for site in sites:
        grouped.setdefault(site.group, []).append(site)

    groups = []
    for title, members in grouped.items():
        primaries = [s for s in members if not s.is_mirror]
        if not primaries:
            raise MissingPrimaryError(f"group {title!r} has no primary site (all {len(members)} are mirrors)")
        if len(primaries) > 1:
            names = ", ".join(s.name for s in primaries)
            raise DuplicatePrimaryError(f"group {title!r} has more than one primary site: {names}")
        groups.append(SiteGroup(title=title,
                                primary=primaries[0],
                                mirrors=tuple(s for s in members if s.is_mirror),
                                subtitle=descriptions.get(title)))
    return groups


class GroupBoard:
    """Owns one SiteMonitor per configured url and renders the grouped view."""

    def __init__(self, config: SiteConfig, client: Optional[httpx.AsyncClient] = None,
                 interval: Optional[float] = None):
        self.interval = interval
        self._own_client = client is None
        self.client = client or httpx.AsyncClient(
            limits=httpx.Limits(max_connections=settings.MAX_CONNECTIONS))
        self.groups: List[SiteGroup] = []
        self.monitors: Dict[str, SiteMonitor] = {}
        # dropped by reload, kept until aclose() so their in-flight probes are awaited
        self._retired: Set[SiteMonitor] = set()
        self._running = False
        self._apply(config)

    def _apply(self, config: SiteConfig) -> None:
        groups = partition_sites(config.sites, config.group_descriptions)
        monitors: Dict[str, SiteMonitor] = {}
        for group in groups:
            for site in group.sites:
                mon = self.monitors.get(site.url)
                if mon is None:
                    mon = SiteMonitor(site, self.client, self.interval)
                    if self._running:
                        mon.start()
                else:
                    mon.retarget(site)
                monitors[site.url] = mon
        for url, mon in self.monitors.items():
            if url not in monitors:
                mon.stop()
                self._retired.add(mon)
        self.groups = groups
        self.monitors = monitors

    def reload(self, config: SiteConfig) -> None:
        """Swap in a new configuration; monitors of urls that stay keep their state."""
        before = set(self.monitors)
        self._apply(config)
        after = set(self.monitors)
        logger.info(f"Site config reloaded: {len(after)} sites in {len(self.groups)} groups "
                    f"(+{len(after - before)} / -{len(before - after)})")

    def start(self) -> None:
        self._running = True
        for mon in self.monitors.values():
            mon.start()
        logger.info(f"Monitoring {len(self.monitors)} sites in {len(self.groups)} groups")

    def stop(self) -> None:
        self._running = False
        for mon in self.monitors.values():
            mon.stop()

    async def aclose(self) -> None:
        self.stop()
        retired, self._retired = self._retired, set()
        await asyncio.gather(*(mon.wait_idle() for mon in [*self.monitors.values(), *retired]))
        if self._own_client:
            await self.client.aclose()

    def _site_view(self, site: Site) -> Dict[str, Any]:
        mon = self.monitors[site.url]
        obs = mon.observation
        label = mon.status_label()
        return {
            "name": site.name,
            "url": site.url,
            "is_mirror": site.is_mirror,
            "status": label.category.value,
            "text": label.text,
            "http": obs.http_status,
            "error": obs.error,
            "checked_at": obs.checked_at,
        }

    def render(self) -> List[Dict[str, Any]]:
        return [{
            "title": g.title,
            "subtitle": g.subtitle,
            "primary": self._site_view(g.primary),
            "mirrors": [self._site_view(m) for m in g.mirrors],
        } for g in self.groups]

    def summary(self) -> Dict[str, int]:
        counts = {c.value: 0 for c in StatusCategory}
        for mon in self.monitors.values():
            counts[mon.status_label().category.value] += 1
        counts["total"] = len(self.monitors)
        return counts
