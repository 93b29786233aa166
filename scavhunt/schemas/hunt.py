import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional


def _strip_required(value: str) -> str:
    text = value.strip()
    if not text:
        raise ValueError("must not be blank")
    return text


class HuntItem(BaseModel):
    name: str
    clue: str
    image: str = "image"
    completed: bool = False


class HuntCreate(BaseModel):
    title: str
    description: str
    difficulty: str
    num_of_players: Optional[int] = Field(default=None, ge=1)
    items: List[HuntItem] = []
    start_date: datetime
    end_date: datetime
    completed: bool = False
    created_by_id: Optional[uuid.UUID] = None
    winner_id: Optional[uuid.UUID] = None
    participants: List[uuid.UUID] = []

    @field_validator("title", "description", "difficulty")
    @classmethod
    def _strip(cls, value: str) -> str:
        return _strip_required(value)


class HuntUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    difficulty: Optional[str] = None
    num_of_players: Optional[int] = Field(default=None, ge=1)
    items: Optional[List[HuntItem]] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    completed: Optional[bool] = None
    created_by_id: Optional[uuid.UUID] = None
    winner_id: Optional[uuid.UUID] = None
    participants: Optional[List[uuid.UUID]] = None

    @field_validator("title", "description", "difficulty")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("must not be null")
        return _strip_required(value)
