from __future__ import annotations

import logging
import os
from collections import OrderedDict

from domain.models import PlanChange

logger = logging.getLogger(__name__)


class ViewCache:
    """
    Aggregate views (dashboard totals, summaries) memoized per scope until the scope's plans change.

    Each scope keeps at most `max_views` entries; the least recently used one is
    evicted first.
    """

    def __init__(self, max_views: int | None = None):
        if max_views is None:
            max_views = int(os.getenv("PLAN_VIEW_CACHE_SIZE", "64"))
        if max_views < 1:
            raise ValueError("max_views must be at least 1")
        self._max_views = max_views
        self._store: dict[str, OrderedDict[str, dict]] = {}

    def put(self, scope_key: str, key: str, value: dict) -> None:
        views = self._store.setdefault(scope_key, OrderedDict())
        views[key] = value
        views.move_to_end(key)
        while len(views) > self._max_views:
            evicted, _ = views.popitem(last=False)
            logger.debug("ViewCache evicted scope=%s view=%s", scope_key, evicted)

    def get(self, scope_key: str, key: str) -> dict | None:
        views = self._store.get(scope_key)
        if views is None or key not in views:
            return None
        views.move_to_end(key)
        return views[key]

    def size(self, scope_key: str) -> int:
        return len(self._store.get(scope_key, ()))

    def invalidate(self, scope_key: str) -> None:
        dropped = self._store.pop(scope_key, None)
        if dropped:
            logger.info("ViewCache invalidated scope=%s views=%d", scope_key, len(dropped))

    def on_change(self, change: PlanChange) -> None:
        self.invalidate(change.scope_key)
