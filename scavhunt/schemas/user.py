from pydantic import BaseModel, Field, field_validator
from typing import Optional


def _normalize_email(value: str) -> str:
    email = value.strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValueError("must be a valid email address")
    return email


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    email: str
    password: str = Field(min_length=8)

    @field_validator("username")
    @classmethod
    def _strip_username(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be blank")
        return text

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        return _normalize_email(value)


class UserUpdate(BaseModel):
    username: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)

    @field_validator("email")
    @classmethod
    def _email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("must not be null")
        return _normalize_email(value)
