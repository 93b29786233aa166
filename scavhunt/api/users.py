from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from scavhunt.api.common import (
    RESPONSE_EXCLUDED_FIELDS,
    commit_or_400,
    load_row_or_404,
    query_collection,
)
from scavhunt.core.security import hash_password
from scavhunt.db.session import get_db
from scavhunt.models.user import User
from scavhunt.schemas.user import UserCreate, UserUpdate
from scavhunt.storage.sql import row_to_dict

router = APIRouter()


def _user_payload(user: User) -> dict:
    return row_to_dict(user, exclude=RESPONSE_EXCLUDED_FIELDS)


@router.get("")
def get_all_users(request: Request, db: Session = Depends(get_db)):
    users = query_collection(request, db, User)
    return {"status": "success", "results": len(users), "data": {"users": users}}


@router.post("", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    commit_or_400(db, "User with this email already exists")
    db.refresh(user)
    return {"status": "success", "data": {"user": _user_payload(user)}}


@router.get("/{id}")
def get_user(id: str, db: Session = Depends(get_db)):
    user = load_row_or_404(db, User, id, "user")
    return {"status": "success", "data": {"user": _user_payload(user)}}


@router.patch("/{id}")
def update_user(id: str, payload: UserUpdate, db: Session = Depends(get_db)):
    user = load_row_or_404(db, User, id, "user")
    changes = payload.model_dump(exclude_unset=True)
    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
    for k, v in changes.items():
        setattr(user, k, v)
    db.add(user)
    commit_or_400(db, "User with this email already exists")
    db.refresh(user)
    return {"status": "success", "data": {"user": _user_payload(user)}}


@router.delete("/{id}", status_code=204)
def delete_user(id: str, db: Session = Depends(get_db)):
    user = load_row_or_404(db, User, id, "user")
    db.delete(user)
    commit_or_400(db)
    return Response(status_code=204)
