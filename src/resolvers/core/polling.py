"""Polling subscriptions backed by APScheduler.

A PollingTask re-fetches a connector's full list on an interval and hands
every record to the host's subscription sink:

- start(): one immediate pass, then an interval job every N minutes
- run_once(): a single fetch-and-emit pass (also what the job calls)
- stop(): shut the scheduler down

Passes never overlap (max_instances=1). A failing pass is logged and the
next tick tries again.

Exports:
    PollingTask: Cancellable handle for one subscription.
"""

from __future__ import annotations

from typing import Awaitable, Callable

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.resolvers.core.instance import Instance, SubscriptionSink

logger = structlog.get_logger(__name__)

Fetcher = Callable[[], Awaitable[list[Instance]]]


class PollingTask:
    """One polling subscription.

    Args:
        name: Job id and log label, e.g. ``"hubspot.contacts"``.
        fetch: Async callable returning the current list of instances.
        sink: Receives ``on_subscription(instance, True)`` per record.
        interval_minutes: Minutes between passes (at least 1).
        dedupe: Skip ids already emitted by this task.
        id_attribute: Attribute used as the dedupe key.
    """

    def __init__(
        self,
        name: str,
        fetch: Fetcher,
        sink: SubscriptionSink,
        interval_minutes: int,
        *,
        dedupe: bool = False,
        id_attribute: str = "id",
    ) -> None:
        self.name = name
        self._fetch = fetch
        self._sink = sink
        self.interval_minutes = max(1, int(interval_minutes))
        self._dedupe = dedupe
        self._id_attribute = id_attribute
        self._seen: set[str] = set()
        self._scheduler: AsyncIOScheduler | None = None
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    async def run_once(self) -> int:
        """Fetch and emit one pass. Returns how many records were emitted."""
        try:
            instances = await self._fetch()
        except Exception as exc:
            logger.error("polling_fetch_failed", task=self.name, error=str(exc))
            return 0

        emitted = 0
        for instance in instances:
            if self._dedupe:
                key = instance.get(self._id_attribute)
                if key is not None:
                    if str(key) in self._seen:
                        continue
                    self._seen.add(str(key))
            try:
                await self._sink.on_subscription(instance, True)
            except Exception as exc:
                logger.error(
                    "polling_emit_failed",
                    task=self.name,
                    instance_id=instance.get(self._id_attribute),
                    error=str(exc),
                )
                continue
            emitted += 1

        logger.info("polling_pass_complete", task=self.name, fetched=len(instances), emitted=emitted)
        return emitted

    async def start(self) -> PollingTask:
        """Run an immediate pass, then schedule the interval job."""
        if self._started:
            return self
        await self.run_once()

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_once,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=self.name,
            name=f"Poll {self.name}",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )
        self._scheduler.start()
        self._started = True
        logger.info("polling_started", task=self.name, interval_minutes=self.interval_minutes)
        return self

    def stop(self) -> None:
        if self._scheduler is not None and self._started:
            self._scheduler.shutdown(wait=False)
            logger.info("polling_stopped", task=self.name)
        self._scheduler = None
        self._started = False


__all__ = ["PollingTask", "Fetcher"]
