"""Small base class shared by connector resolvers.

Holds the namespace, wraps mapped dicts as Instances and starts polling
tasks. Connectors stay independent; nothing registers or discovers them.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

import structlog

from src.resolvers.core.instance import Instance, SubscriptionSink, make_instance
from src.resolvers.core.polling import Fetcher, PollingTask

logger = structlog.get_logger(__name__)


class ResolverBase:
    NAMESPACE: str = ""

    def _instance(self, entity_type: str, attributes: Mapping[str, Any]) -> Instance:
        return make_instance(self.NAMESPACE, entity_type, attributes)

    def _instances(
        self,
        entity_type: str,
        records: Iterable[Any],
        mapper: Callable[..., Mapping[str, Any]],
        *args: Any,
        limit: int | None = None,
    ) -> list[Instance]:
        """Map raw vendor records, keeping at most ``limit`` of them."""
        return [self._instance(entity_type, mapper(record, *args)) for record in list(records or [])[:limit]]

    async def _subscribe(
        self,
        entity: str,
        fetch: Fetcher,
        sink: SubscriptionSink,
        interval_minutes: int,
        *,
        dedupe: bool = False,
    ) -> PollingTask:
        task = PollingTask(
            f"{self.NAMESPACE}.{entity}",
            fetch,
            sink,
            interval_minutes,
            dedupe=dedupe,
        )
        return await task.start()
