"""create disabled slots

Revision ID: 20261019_03
Revises: 20261019_02
Create Date: 2026-10-19 10:20:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_03"
down_revision: Union[str, None] = "20261019_02"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "disabled_slots",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("venue_id", sa.Uuid(), nullable=False),
        sa.Column("court_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.Time(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["venue_id"], ["venues.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["court_id"], ["courts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_disabled_slots_court_id", "disabled_slots", ["court_id"], unique=False)
    op.create_index("ix_disabled_slots_venue_date", "disabled_slots", ["venue_id", "date"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_disabled_slots_venue_date", table_name="disabled_slots")
    op.drop_index("ix_disabled_slots_court_id", table_name="disabled_slots")
    op.drop_table("disabled_slots")
