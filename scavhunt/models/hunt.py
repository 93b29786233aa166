import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from scavhunt.db.session import Base
from scavhunt.models.common import UUIDMixin, TimestampMixin
from scavhunt.models.hunt_participant import hunt_participants
from scavhunt.models.user import User

class Hunt(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "hunts"
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    num_of_players: Mapped[int | None] = mapped_column(Integer, nullable=True)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)  # [{name, clue, image, completed}]
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    winner_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    participants: Mapped[list[User]] = relationship(
        secondary=hunt_participants, back_populates="hunts", lazy="selectin"
    )

    __mapper_args__ = {"version_id_col": version_id}

    HIDDEN_FIELDS = frozenset()
    LIST_FIELDS = {"participants": (hunt_participants.c.hunt_id, hunt_participants.c.user_id)}
