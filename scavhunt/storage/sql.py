from __future__ import annotations

import logging
import re
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import asc, desc
from sqlalchemy.exc import DataError, OperationalError
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import Session
from sqlalchemy.sql.sqltypes import JSON

from scavhunt.core.errors import ClientRequestError, StorageUnavailableError
from scavhunt.query.descriptor import Projection, SortClause

_LOG = logging.getLogger("scavhunt.db")

# Native operator tokens mapped to SQLAlchemy column methods.
NATIVE_OPERATORS = {
    "$eq": "__eq__",
    "$gt": "__gt__",
    "$gte": "__ge__",
    "$lt": "__lt__",
    "$lte": "__le__",
}
IN_OPERATOR = "$in"

# Document-store spellings still used by older clients.
FIELD_ALIASES = {"_id": "id", "__v": "version_id"}

# Integer columns are BIGINT at most.
INT_MIN = -(2**63)
INT_MAX = 2**63 - 1

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _bad_filter_value(column_key: str, kind: str) -> ClientRequestError:
    return ClientRequestError(f'Invalid filter value for field "{column_key}" ({kind})')


def _coerce_bool_filter_value(column_key: str, value):
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    raise _bad_filter_value(column_key, "boolean")


def _coerce_int_filter_value(column_key: str, value):
    if isinstance(value, bool):
        raise _bad_filter_value(column_key, "number")
    if isinstance(value, float):
        if not value.is_integer():
            raise _bad_filter_value(column_key, "number")
        value = int(value)
    if not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except (ValueError, TypeError):
            raise _bad_filter_value(column_key, "number")
    if not INT_MIN <= value <= INT_MAX:
        raise _bad_filter_value(column_key, "number out of range")
    return value


def _coerce_datetime_filter_value(column_key: str, value):
    text = str(value or "").strip()
    if not text:
        raise _bad_filter_value(column_key, "datetime")
    try:
        if "T" not in text and " " not in text and len(text) == 10:
            # Date-only filter value for timestamp columns -> start of the day.
            parsed = datetime.combine(date.fromisoformat(text), datetime.min.time())
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise _bad_filter_value(column_key, "datetime")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _column_python_type(column):
    try:
        return column.property.columns[0].type.python_type
    except (AttributeError, IndexError, NotImplementedError):
        return None


def _coerce_filter_value(column, value):
    python_type = _column_python_type(column)
    if python_type is None:
        return value
    if python_type is uuid.UUID:
        try:
            return uuid.UUID(str(value or "").strip())
        except ValueError:
            raise ClientRequestError(f'Invalid UUID in filter for field "{column.key}"')
    if python_type is bool:
        return _coerce_bool_filter_value(column.key, value)
    if python_type is int:
        return _coerce_int_filter_value(column.key, value)
    if python_type is datetime:
        return _coerce_datetime_filter_value(column.key, value)
    if python_type is str and not isinstance(value, str):
        return str(value)
    return value


def _is_date_only_filter_literal(raw_value) -> bool:
    if not isinstance(raw_value, str):
        return False
    text = raw_value.strip()
    if not text or "T" in text or " " in text:
        return False
    try:
        date.fromisoformat(text)
        return True
    except ValueError:
        return False


def serialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: serialize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def visible_columns(model: type) -> list[str]:
    hidden = getattr(model, "HIDDEN_FIELDS", frozenset())
    return [column.key for column in sa_inspect(model).columns if column.key not in hidden]


def list_fields(model: type) -> dict:
    """Many-to-many id lists of ``model`` as ``{name: (owner_key, value_key)}`` columns."""
    return dict(getattr(model, "LIST_FIELDS", {}))


def row_to_dict(row: Any, exclude: set[str] | frozenset[str] = frozenset()) -> dict[str, Any]:
    payload = {key: serialize_value(getattr(row, key)) for key in visible_columns(type(row)) if key not in exclude}
    for name in list_fields(type(row)):
        if name not in exclude:
            payload[name] = [str(related.id) for related in getattr(row, name)]
    return payload


class SqlQueryTarget:
    """Applies a compiled query descriptor to a SQLAlchemy ORM model."""

    def __init__(self, session: Session, model: type):
        self._session = session
        self._model = model
        self._visible = visible_columns(model)
        self._lists = list_fields(model)
        self._conditions: list = []
        self._order_by: list = []
        self._selected = list(self._visible)
        self._selected_lists = list(self._lists)
        self._skip: int | None = None
        self._limit: int | None = None

    def _resolve(self, field: str) -> str:
        if field in self._visible or field in self._lists:
            return field
        if field in FIELD_ALIASES:
            return FIELD_ALIASES[field]
        snake = _CAMEL_BOUNDARY_RE.sub("_", field).lower()
        if snake != field and (snake in self._visible or snake in self._lists):
            return snake
        raise ClientRequestError(f'Unknown field "{field}"')

    def _column(self, field: str, usage: str):
        key = self._resolve(field)
        if key in self._lists:
            if usage != "projection":
                raise ClientRequestError(f'Field "{field}" cannot be used in a {usage}')
            return None
        if key not in self._visible:
            raise ClientRequestError(f'Unknown field "{field}"')
        column = getattr(self._model, key)
        if usage != "projection" and isinstance(column.property.columns[0].type, JSON):
            raise ClientRequestError(f'Field "{field}" cannot be used in a {usage}')
        return column

    def _comparison(self, column, op: str, raw_value):
        if op == IN_OPERATOR:
            values = raw_value if isinstance(raw_value, (list, tuple)) else [raw_value]
            return column.in_([_coerce_filter_value(column, value) for value in values])
        method = NATIVE_OPERATORS.get(op)
        if method is None:
            raise ClientRequestError(f'Unsupported operator "{op}" for field "{column.key}"')
        value = _coerce_filter_value(column, raw_value)
        if _column_python_type(column) is datetime and op == "$eq" and _is_date_only_filter_literal(raw_value):
            day_start = value
            day_end = day_start + timedelta(days=1)
            return (column >= day_start) & (column < day_end)
        return getattr(column, method)(value)

    def _conditions_for(self, predicate: dict[str, Any]) -> list:
        conditions = []
        for field, condition in predicate.items():
            column = self._column(field, "filter")
            if isinstance(condition, dict):
                for op, value in condition.items():
                    conditions.append(self._comparison(column, op, value))
            else:
                conditions.append(self._comparison(column, "$eq", condition))
        return conditions

    def apply_filter(self, predicate: dict[str, Any]) -> "SqlQueryTarget":
        self._conditions = self._conditions_for(predicate)
        return self

    def apply_sort(self, clauses: list[SortClause]) -> "SqlQueryTarget":
        order_by = []
        for clause in clauses:
            column = self._column(clause.field, "sort")
            order_by.append(asc(column) if clause.dir == "asc" else desc(column))
        self._order_by = order_by
        return self

    def apply_projection(self, projection: Projection) -> "SqlQueryTarget":
        fields = []
        for field in projection.fields:
            self._column(field, "projection")
            key = self._resolve(field)
            if key not in fields:
                fields.append(key)
        if projection.mode == "include":
            selected = ["id"] + [key for key in fields if key != "id" and key in self._visible]
            selected_lists = [key for key in fields if key in self._lists]
        else:
            selected = [key for key in self._visible if key not in fields]
            selected_lists = [key for key in self._lists if key not in fields]
        if not selected and not selected_lists:
            raise ClientRequestError("Projection excludes every field")
        self._selected = selected
        self._selected_lists = selected_lists
        return self

    def apply_skip_limit(self, skip: int, limit: int) -> "SqlQueryTarget":
        self._skip = skip
        self._limit = limit
        return self

    def _run(self, action: str, fetch):
        try:
            return fetch()
        except DataError as exc:
            self._session.rollback()
            raise ClientRequestError("Invalid filter value") from exc
        except OperationalError as exc:
            _LOG.error("%s on %s failed: %s", action, self._model.__tablename__, exc)
            raise StorageUnavailableError("Database is unavailable") from exc

    def _list_values(self, row_ids: list) -> dict[str, dict]:
        values: dict[str, dict] = {}
        for name in self._selected_lists:
            owner_key, value_key = self._lists[name]
            grouped: dict = {row_id: [] for row_id in row_ids}
            if row_ids:
                pairs = self._run(
                    "Query",
                    lambda: self._session.query(owner_key, value_key).filter(owner_key.in_(row_ids)).all(),
                )
                for owner_id, value_id in pairs:
                    grouped[owner_id].append(str(value_id))
            values[name] = grouped
        return values

    def all(self) -> list[dict[str, Any]]:
        # The id is always fetched so id lists can be attached to each row.
        keys = self._selected if "id" in self._selected else ["id", *self._selected]
        q = self._session.query(*[getattr(self._model, key) for key in keys])
        if self._conditions:
            q = q.filter(*self._conditions)
        if self._order_by:
            q = q.order_by(*self._order_by)
        if self._skip:
            q = q.offset(self._skip)
        if self._limit is not None:
            q = q.limit(self._limit)
        rows = self._run("Query", q.all)
        records = [dict(zip(keys, row)) for row in rows]
        lists = self._list_values([record["id"] for record in records])
        result = []
        for record in records:
            payload = {key: serialize_value(record[key]) for key in self._selected}
            for name, grouped in lists.items():
                payload[name] = grouped[record["id"]]
            result.append(payload)
        return result

    def count_matching(self, predicate: dict[str, Any]) -> int:
        conditions = self._conditions_for(predicate)
        return self._run("Count", lambda: self._session.query(self._model).filter(*conditions).count())
