from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from scavhunt.api.common import (
    RESPONSE_EXCLUDED_FIELDS,
    commit_or_400,
    load_row_or_404,
    query_collection,
)
from scavhunt.core.errors import ClientRequestError
from scavhunt.db.session import get_db
from scavhunt.models.hunt import Hunt
from scavhunt.models.user import User
from scavhunt.schemas.hunt import HuntCreate, HuntUpdate
from scavhunt.storage.sql import row_to_dict

router = APIRouter()


def _with_virtuals(record: dict) -> dict:
    if isinstance(record.get("items"), list):
        record["num_of_items"] = len(record["items"])
    if isinstance(record.get("participants"), list):
        record["num_of_participants"] = len(record["participants"])
    return record


def _hunt_payload(hunt: Hunt) -> dict:
    return _with_virtuals(row_to_dict(hunt, exclude=RESPONSE_EXCLUDED_FIELDS))


def _load_participants(db: Session, ids) -> list[User]:
    unique_ids = list(dict.fromkeys(ids or []))
    if not unique_ids:
        return []
    users = db.query(User).filter(User.id.in_(unique_ids)).all()
    if len(users) != len(unique_ids):
        raise ClientRequestError("Unknown participant id")
    by_id = {user.id: user for user in users}
    return [by_id[user_id] for user_id in unique_ids]


@router.get("")
def get_all_hunts(request: Request, db: Session = Depends(get_db)):
    hunts = [_with_virtuals(record) for record in query_collection(request, db, Hunt)]
    return {"status": "success", "results": len(hunts), "data": {"hunts": hunts}}


@router.post("", status_code=201)
def create_hunt(payload: HuntCreate, db: Session = Depends(get_db)):
    hunt = Hunt(
        **payload.model_dump(mode="json", include={"items"}),
        **payload.model_dump(exclude={"items", "participants"}),
    )
    hunt.participants = _load_participants(db, payload.participants)
    db.add(hunt)
    commit_or_400(db)
    db.refresh(hunt)
    return {"status": "success", "data": {"hunt": _hunt_payload(hunt)}}


@router.get("/{id}")
def get_hunt(id: str, db: Session = Depends(get_db)):
    hunt = load_row_or_404(db, Hunt, id, "hunt")
    return {"status": "success", "data": {"hunt": _hunt_payload(hunt)}}


@router.patch("/{id}")
def update_hunt(id: str, payload: HuntUpdate, db: Session = Depends(get_db)):
    hunt = load_row_or_404(db, Hunt, id, "hunt")
    changes = payload.model_dump(exclude_unset=True, exclude={"items", "participants"})
    if "items" in payload.model_fields_set:
        changes["items"] = payload.model_dump(mode="json", include={"items"})["items"] or []
    if "participants" in payload.model_fields_set:
        hunt.participants = _load_participants(db, payload.participants)
    for k, v in changes.items():
        setattr(hunt, k, v)
    db.add(hunt)
    commit_or_400(db)
    db.refresh(hunt)
    return {"status": "success", "data": {"hunt": _hunt_payload(hunt)}}


@router.delete("/{id}", status_code=204)
def delete_hunt(id: str, db: Session = Depends(get_db)):
    hunt = load_row_or_404(db, Hunt, id, "hunt")
    db.delete(hunt)
    commit_or_400(db)
    return Response(status_code=204)
