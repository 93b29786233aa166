from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from scavhunt.query.descriptor import Projection, SortClause


class QueryTarget(Protocol):
    """Chainable storage query that a compiled descriptor is applied to."""

    def apply_filter(self, predicate: dict[str, Any]) -> "QueryTarget": ...

    def apply_sort(self, clauses: list["SortClause"]) -> "QueryTarget": ...

    def apply_projection(self, projection: "Projection") -> "QueryTarget": ...

    def apply_skip_limit(self, skip: int, limit: int) -> "QueryTarget": ...

    def all(self) -> list[dict[str, Any]]: ...

    def count_matching(self, predicate: dict[str, Any]) -> int: ...
