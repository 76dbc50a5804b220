"""
Folded view of one entity family.

A State maps entity id to that entity's frozen state. It is rebuilt from the
log on every read and never persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class State:
    """
    version counts the handler results that changed the map; replays of the
    same log end on the same version.
    """
    version: int = 0
    aggregates: Dict[str, Any] = field(default_factory=dict)

    def get_agg(self, aggregate_id: str) -> Any:
        return self.aggregates.get(aggregate_id)

    def with_agg(self, aggregate_id: str, agg_state: Any) -> "State":
        """Copy with aggregate_id set to agg_state."""
        aggs = {**self.aggregates, aggregate_id: agg_state}
        return State(version=self.version + 1, aggregates=aggs)

    def without_agg(self, aggregate_id: str) -> "State":
        if aggregate_id not in self.aggregates:
            return self
        aggs = {k: v for k, v in self.aggregates.items() if k != aggregate_id}
        return State(version=self.version + 1, aggregates=aggs)

    def values(self) -> List[Any]:
        """Entity states ordered by entity id."""
        return [self.aggregates[k] for k in sorted(self.aggregates)]
