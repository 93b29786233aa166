from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from scavhunt.core.errors import ClientRequestError
from scavhunt.query.descriptor import RESERVED_PARAMS

# `field`, `field[op]` or `field[]`; one bracket level only.
_KEY_RE = re.compile(r"^(?P<field>[^\[\]]+)(?:\[(?P<op>[^\[\]]*)\])?$")


def _conflict(field: str) -> ClientRequestError:
    return ClientRequestError(f'Conflicting values for query parameter "{field}"')


def _append(current: Any, value: str) -> list:
    if isinstance(current, list):
        return [*current, value]
    return [current, value]


def parse_query_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Build the nested parameter mapping from decoded query-string pairs.

    ``duration[gte]=5`` becomes ``{"duration": {"gte": "5"}}``, a repeated
    plain key becomes a list, and a repeated reserved key keeps its last value.
    """
    params: dict[str, Any] = {}
    for key, value in items:
        match = _KEY_RE.match(key)
        if match is None:
            raise ClientRequestError(f'Malformed query parameter "{key}"')
        field, op = match.group("field"), match.group("op")
        current = params.get(field)

        if op is None or op == "":
            if field in RESERVED_PARAMS and op is None:
                params[field] = value
            elif current is None:
                params[field] = [value] if op == "" else value
            elif isinstance(current, dict):
                raise _conflict(field)
            else:
                params[field] = _append(current, value)
            continue

        if current is None:
            params[field] = {op: value}
        elif not isinstance(current, dict):
            raise _conflict(field)
        elif op in current:
            current[op] = _append(current[op], value)
        else:
            current[op] = value
    return params
