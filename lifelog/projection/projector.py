"""
Entity Projector.

One Projector per entity family. It owns the family's event type tags (the
scan filter), its decoder and its reducer; reading is isolated behind
scan() so an indexed store can replace the full scan later.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from ..core.events import Event
from ..core.reducer import Reducer
from ..log.store import EventStore
from ..metrics import track_folded
from ..replay.runner import ReplayResult, fold

logger = logging.getLogger(__name__)


class Projector:
    def __init__(
        self,
        name: str,
        event_types: Sequence[str],
        decode: Callable[[Event], Any],
        reducer: Reducer,
    ) -> None:
        self.name = name
        self.event_types = tuple(event_types)
        self.decode = decode
        self.reducer = reducer

    def scan(self, store: EventStore) -> List[Event]:
        return store.scan(types=self.event_types)

    def fold(self, events: Iterable[Event]) -> ReplayResult:
        result = fold(events, self.decode, self.reducer)
        track_folded(self.name, result.applied + result.skipped)
        logger.debug(
            "folded %s: applied=%d skipped=%d entities=%d",
            self.name,
            result.applied,
            result.skipped,
            len(result.state.aggregates),
        )
        return result

    def project(
        self,
        events: Iterable[Event],
        include: Optional[Callable[[Any], bool]] = None,
        sort_key: Optional[Callable[[Any], Any]] = None,
        limit: Optional[int] = None,
    ) -> Tuple[Any, ...]:
        """
        Fold, then filter, order and truncate the entity list.

        Without sort_key entities come back ordered by id.
        """
        items = self.fold(events).state.values()
        if include is not None:
            items = [item for item in items if include(item)]
        if sort_key is not None:
            items.sort(key=sort_key)
        if limit is not None:
            items = items[:limit]
        return tuple(items)

    def get(self, events: Iterable[Event], entity_id: str) -> Any:
        return self.fold(events).state.get_agg(entity_id)

    def load(self, store: EventStore, entity_id: str) -> Any:
        return self.get(self.scan(store), entity_id)
