from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, PrivateAttr

from scavhunt.query.target import QueryTarget

Dir = Literal["asc", "desc"]
Mode = Literal["include", "exclude"]

RESERVED_PARAMS = frozenset({"page", "limit", "sort", "fields"})


def freeze_predicate(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze_predicate(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_predicate(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


class SortClause(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    dir: Dir


class Projection(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Mode
    fields: Tuple[str, ...]


class Pagination(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int = 1
    limit: int = 100
    skip: int = 0
    explicit_page: bool = False


class QueryDescriptor(BaseModel):
    """Compiled filter, sort, projection and page bounds for one target.

    A field left as ``None`` means the stage never ran, and the target keeps its
    own default for that dimension. The descriptor can be executed once.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    target: Any
    # Read-only mapping built by freeze_predicate().
    filter: Optional[Any] = None
    sort: Optional[Tuple[SortClause, ...]] = None
    projection: Optional[Projection] = None
    pagination: Optional[Pagination] = None

    _executed: bool = PrivateAttr(default=False)

    def predicate(self) -> dict:
        """Mutable copy of the compiled filter, empty when no filter was compiled."""
        return _thaw(self.filter) if self.filter is not None else {}

    def execute(self) -> list:
        if self._executed:
            raise RuntimeError("Query descriptor has already been executed")
        self._executed = True
        target: QueryTarget = self.target
        if self.filter is not None:
            target = target.apply_filter(self.predicate())
        if self.sort is not None:
            target = target.apply_sort(list(self.sort))
        if self.projection is not None:
            target = target.apply_projection(self.projection)
        if self.pagination is not None:
            target = target.apply_skip_limit(self.pagination.skip, self.pagination.limit)
        return target.all()
