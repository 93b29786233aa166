"""hunt participants
Revision ID: 0002_hunt_participants
Revises: 0001_init
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0002_hunt_participants"
down_revision = "0001_init"
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "hunt_participants",
        sa.Column(
            "hunt_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("hunts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_hunt_participants_user_id", "hunt_participants", ["user_id"])

def downgrade():
    op.drop_index("ix_hunt_participants_user_id", table_name="hunt_participants")
    op.drop_table("hunt_participants")
