import asyncio
import json
import logging
import time
from typing import Optional, Set

import httpx

from .config import settings
from .models import Observation, Site, StatusLabel, status_label

logger = logging.getLogger(__name__)


class SiteMonitor:
    """Keeps the latest Observation for one site, probing it on a fixed-rate timer.

    The first probe fires as soon as ``start()`` is called, then one probe per
    ``interval`` seconds. Probes are spawned, not awaited, by the timer so a slow
    response never shifts the schedule. ``stop()`` only cancels the timer; a probe
    still in flight finishes but its result is dropped.
    """

    def __init__(self, site: Site, client: httpx.AsyncClient, interval: Optional[float] = None):
        self.site = site
        self.client = client
        self.interval = settings.POLL_INTERVAL_S if interval is None else float(interval)
        if self.interval <= 0:
            raise ValueError(f"poll interval must be positive, got {self.interval}")
        self._observation = Observation.pending()
        self._timer: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        # bumped by stop(); probes started under an older generation are discarded
        self._generation = 0

    @property
    def observation(self) -> Observation:
        return self._observation

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def status_label(self) -> StatusLabel:
        return status_label(self._observation)

    def start(self) -> None:
        if self.running:
            return
        self._timer = self._track(asyncio.create_task(self._tick_loop(), name=f"monitor:{self.site.url}"))

    def stop(self) -> None:
        self._generation += 1
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done():
            timer.cancel()

    def retarget(self, site: Site) -> None:
        if site.url == self.site.url:
            self.site = site
            return
        was_running = self.running
        self.stop()
        self.site = site
        self._observation = Observation.pending()
        if was_running:
            self.start()

    async def wait_idle(self) -> None:
        """Wait for in-flight probes (and a cancelled timer) to settle."""
        pending = [t for t in self._tasks if t is not self._timer]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def probe(self) -> Observation:
        generation = self._generation
        url = self.site.url
        started = time.monotonic()
        try:
            r = await self.client.head(url, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            obs = Observation.failed(str(e))
        else:
            obs = Observation.resolved(r.status_code)
        elapsed_ms = round((time.monotonic() - started) * 1000, 1)

        if generation != self._generation:
            logger.debug("dropping stale probe result for %s", url)
            return obs
        self._publish(obs, elapsed_ms)
        return obs

    def _publish(self, obs: Observation, elapsed_ms: float) -> None:
        before = status_label(self._observation)
        self._observation = obs
        after = status_label(obs)
        logger.debug(json.dumps({
            "url": self.site.url,
            "http": obs.http_status,
            "reachable": obs.reachable,
            "error": obs.error,
            "elapsed_ms": elapsed_ms,
            "status": after.text,
        }))
        if before.category != after.category:
            logger.info(f"{self.site.name} <{self.site.url}>: {before.text} -> {after.text}"
                        + (f" ({obs.error})" if obs.error else ""))

    async def _tick_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            self._track(asyncio.create_task(self.probe(), name=f"probe:{self.site.url}"))
            now = loop.time()
            next_tick += self.interval
            # a stalled loop skips missed ticks instead of bursting
            while next_tick <= now:
                next_tick += self.interval
            await asyncio.sleep(next_tick - now)

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"{task.get_name()} crashed", exc_info=exc)
