from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from scavhunt.db.session import Base
from scavhunt.models.common import UUIDMixin, TimestampMixin
from scavhunt.models.hunt_participant import hunt_participants

class User(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "users"
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    hunts: Mapped[list["Hunt"]] = relationship(
        secondary=hunt_participants, back_populates="participants", lazy="selectin"
    )

    __mapper_args__ = {"version_id_col": version_id}

    # Never filterable, sortable or returned.
    HIDDEN_FIELDS = frozenset({"password_hash"})
    LIST_FIELDS = {"hunts": (hunt_participants.c.user_id, hunt_participants.c.hunt_id)}
