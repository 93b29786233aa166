"""Compile a raw query-string mapping into a :class:`QueryDescriptor`.

Each stage is a pure function taking the accumulated descriptor and the
untouched raw parameters and returning a new descriptor. :class:`QueryCompiler`
chains them for one request::

    descriptor = (
        QueryCompiler(target, params)
        .filter()
        .sort()
        .limit_fields()
        .paginate()
        .descriptor
    )
    rows = descriptor.execute()
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping
from typing import Any

from scavhunt.core.errors import ClientRequestError, PageOutOfRangeError
from scavhunt.query.descriptor import (
    RESERVED_PARAMS,
    Pagination,
    Projection,
    QueryDescriptor,
    SortClause,
    freeze_predicate,
)

# Maps `?field[op]=value` suffixes to the operator tokens the storage layer understands.
OPERATOR_MAP = {
    "eq": "$eq",
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
}
COMPARISON_OPERATORS = {"gt", "gte", "lt", "lte"}
IN_OPERATOR = "$in"

CREATED_AT_FIELD = "created_at"
VERSION_FIELD = "version_id"
DEFAULT_SORT = (SortClause(field=CREATED_AT_FIELD, dir="desc"),)
DEFAULT_PROJECTION = Projection(mode="exclude", fields=(VERSION_FIELD,))
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000

CountCallback = Callable[[dict], int]

_INT_RE = re.compile(r"^[+-]?\d+$")
_DIGITS_RE = re.compile(r"^\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?$|^[+-]?\d+[eE][+-]?\d+$")
_SCALAR_TYPES = (str, int, float, bool)


def _bad_param(message: str) -> ClientRequestError:
    return ClientRequestError(message)


def _check_field_name(field: Any) -> str:
    if not isinstance(field, str) or not field.strip():
        raise _bad_param("Field names must be non-empty strings")
    if field.startswith("$"):
        raise _bad_param(f'Invalid field name "{field}"')
    return field


def _coerce_comparison_value(value):
    # Only convert when the number prints back as the same text, so string
    # columns still compare against exactly what the client sent.
    if isinstance(value, bool) or not isinstance(value, str):
        return value
    if _INT_RE.match(value) and str(int(value)) == value:
        return int(value)
    if _FLOAT_RE.match(value) and repr(float(value)) == value:
        return float(value)
    return value


def _compile_operator_mapping(field: str, conditions: Mapping) -> dict[str, Any]:
    if not conditions:
        raise _bad_param(f'Empty filter for field "{field}"')
    compiled = {}
    for op, value in conditions.items():
        native = OPERATOR_MAP.get(op) if isinstance(op, str) else None
        if native is None:
            raise _bad_param(f'Unsupported operator "{op}" for field "{field}"')
        if not isinstance(value, _SCALAR_TYPES):
            raise _bad_param(f'Invalid value for "{field}[{op}]"')
        compiled[native] = _coerce_comparison_value(value) if op in COMPARISON_OPERATORS else value
    return compiled


def _compile_predicate(field: str, value: Any):
    if isinstance(value, Mapping):
        return _compile_operator_mapping(field, value)
    if isinstance(value, (list, tuple)):
        if not value or not all(isinstance(item, _SCALAR_TYPES) for item in value):
            raise _bad_param(f'Invalid value list for field "{field}"')
        return {IN_OPERATOR: list(value)}
    if isinstance(value, _SCALAR_TYPES):
        return value
    raise _bad_param(f'Invalid value for field "{field}"')


def compile_filter(descriptor: QueryDescriptor, params: Mapping[str, Any]) -> QueryDescriptor:
    predicate = {}
    for field, value in params.items():
        if field in RESERVED_PARAMS:
            continue
        predicate[_check_field_name(field)] = _compile_predicate(field, value)
    return descriptor.model_copy(update={"filter": freeze_predicate(predicate)})


def _split_tokens(name: str, raw: Any) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, str):
        raise _bad_param(f'"{name}" must be a comma separated list of field names')
    return [token.strip() for token in raw.split(",") if token.strip()]


def _signed_field(name: str, token: str) -> tuple[str, bool]:
    negated = token.startswith("-")
    field = token[1:].strip() if negated else token
    if not field or field.startswith("-"):
        raise _bad_param(f'Invalid field "{token}" in "{name}"')
    return _check_field_name(field), negated


def compile_sort(descriptor: QueryDescriptor, params: Mapping[str, Any]) -> QueryDescriptor:
    clauses = []
    seen = set()
    for token in _split_tokens("sort", params.get("sort")):
        field, descending = _signed_field("sort", token)
        if field in seen:
            continue
        seen.add(field)
        clauses.append(SortClause(field=field, dir="desc" if descending else "asc"))
    return descriptor.model_copy(update={"sort": tuple(clauses) or DEFAULT_SORT})


def compile_projection(descriptor: QueryDescriptor, params: Mapping[str, Any]) -> QueryDescriptor:
    tokens = _split_tokens("fields", params.get("fields"))
    if not tokens:
        return descriptor.model_copy(update={"projection": DEFAULT_PROJECTION})
    fields = []
    modes = set()
    for token in tokens:
        field, excluded = _signed_field("fields", token)
        modes.add("exclude" if excluded else "include")
        if field not in fields:
            fields.append(field)
    if len(modes) > 1:
        raise _bad_param("Cannot mix included and excluded fields in one projection")
    return descriptor.model_copy(update={"projection": Projection(mode=modes.pop(), fields=tuple(fields))})


def _positive_int(name: str, raw: Any, default: int) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    if isinstance(raw, bool):
        raise _bad_param(f'"{name}" must be a positive integer')
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _DIGITS_RE.match(raw.strip()):
        value = int(raw.strip())
    else:
        raise _bad_param(f'"{name}" must be a positive integer')
    if value < 1:
        raise _bad_param(f'"{name}" must be a positive integer')
    return value


def compile_pagination(
    descriptor: QueryDescriptor,
    params: Mapping[str, Any],
    count: CountCallback,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> QueryDescriptor:
    raw_page = params.get("page")
    explicit_page = raw_page is not None and not (isinstance(raw_page, str) and not raw_page.strip())
    page = _positive_int("page", raw_page, 1)
    limit = _positive_int("limit", params.get("limit"), default_limit)
    if limit > max_limit:
        raise _bad_param(f'"limit" must not exceed {max_limit}')
    skip = (page - 1) * limit
    # Page 1 always exists, so only a later page needs the existence check.
    if explicit_page and skip > 0:
        total = count(descriptor.predicate())
        if skip >= total:
            raise PageOutOfRangeError(page=page, limit=limit, total=total)
    pagination = Pagination(page=page, limit=limit, skip=skip, explicit_page=explicit_page)
    return descriptor.model_copy(update={"pagination": pagination})


class QueryCompiler:
    """Per-request builder over the compile stages.

    Every stage method returns the same instance. A stage that raises leaves
    the already compiled descriptor unchanged.
    """

    def __init__(
        self,
        target,
        params: Mapping[str, Any] | None,
        default_limit: int = DEFAULT_PAGE_SIZE,
        max_limit: int = MAX_PAGE_SIZE,
    ):
        self._target = target
        self._params = copy.deepcopy(dict(params or {}))
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._descriptor = QueryDescriptor(target=target)

    @property
    def descriptor(self) -> QueryDescriptor:
        return self._descriptor

    def filter(self) -> "QueryCompiler":
        self._descriptor = compile_filter(self._descriptor, self._params)
        return self

    def sort(self) -> "QueryCompiler":
        self._descriptor = compile_sort(self._descriptor, self._params)
        return self

    def limit_fields(self) -> "QueryCompiler":
        self._descriptor = compile_projection(self._descriptor, self._params)
        return self

    def paginate(self, count: CountCallback | None = None) -> "QueryCompiler":
        self._descriptor = compile_pagination(
            self._descriptor,
            self._params,
            count or self._target.count_matching,
            default_limit=self._default_limit,
            max_limit=self._max_limit,
        )
        return self


def compile_query(
    target,
    params: Mapping[str, Any] | None,
    count: CountCallback | None = None,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> QueryDescriptor:
    return (
        QueryCompiler(target, params, default_limit=default_limit, max_limit=max_limit)
        .filter()
        .sort()
        .limit_fields()
        .paginate(count)
        .descriptor
    )
