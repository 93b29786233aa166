from sqlalchemy import Column, ForeignKey, Table
from sqlalchemy.dialects.postgresql import UUID
from scavhunt.db.session import Base

hunt_participants = Table(
    "hunt_participants",
    Base.metadata,
    Column("hunt_id", UUID(as_uuid=True), ForeignKey("hunts.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)
