from __future__ import annotations

import uuid
from typing import Any

from fastapi import Request
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from scavhunt.core.config import Settings
from scavhunt.core.errors import ClientRequestError, NotFoundError, StorageUnavailableError
from scavhunt.query.compiler import VERSION_FIELD, QueryCompiler
from scavhunt.query.params import parse_query_params
from scavhunt.storage.sql import SqlQueryTarget

# Fields never included in single-record responses.
RESPONSE_EXCLUDED_FIELDS = frozenset({VERSION_FIELD})


def _settings(request: Request) -> Settings:
    return request.app.state.context.settings


def query_collection(request: Request, db: Session, model: type) -> list[dict[str, Any]]:
    app_settings = _settings(request)
    params = parse_query_params(request.query_params.multi_items())
    descriptor = (
        QueryCompiler(
            SqlQueryTarget(db, model),
            params,
            default_limit=app_settings.DEFAULT_PAGE_SIZE,
            max_limit=app_settings.MAX_PAGE_SIZE,
        )
        .filter()
        .sort()
        .limit_fields()
        .paginate()
        .descriptor
    )
    return descriptor.execute()


def parse_id_or_400(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ClientRequestError(f"Invalid id: {value}")


def load_row_or_404(db: Session, model: type, row_id: str, label: str):
    try:
        entity = db.get(model, parse_id_or_400(row_id))
    except OperationalError as exc:
        raise StorageUnavailableError("Database is unavailable") from exc
    if entity is None:
        raise NotFoundError(f"No {label} found with that ID")
    return entity


def commit_or_400(db: Session, detail: str = "Data constraint violation") -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ClientRequestError(detail)
    except OperationalError as exc:
        db.rollback()
        raise StorageUnavailableError("Database is unavailable") from exc
