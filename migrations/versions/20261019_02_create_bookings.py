"""create bookings

Revision ID: 20261019_02
Revises: 20261019_01
Create Date: 2026-10-19 10:10:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_02"
down_revision: Union[str, None] = "20261019_01"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("venue_id", sa.Uuid(), nullable=False),
        sa.Column("court_id", sa.Uuid(), nullable=False),
        sa.Column("player_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="ACTIVE"),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("player_name", sa.String(length=120), nullable=True),
        sa.Column("player_phone", sa.String(length=32), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["venue_id"], ["venues.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["court_id"], ["courts.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["player_id"], ["users.id"], ondelete="RESTRICT"),
        sa.CheckConstraint("price > 0", name="ck_bookings_price_positive"),
    )
    op.create_index("ix_bookings_venue_id", "bookings", ["venue_id"], unique=False)
    op.create_index("ix_bookings_player_id", "bookings", ["player_id"], unique=False)
    op.create_index("ix_bookings_court_date", "bookings", ["court_id", "date"], unique=False)
    op.create_index(
        "uq_bookings_active_slot",
        "bookings",
        ["court_id", "date", "start_time"],
        unique=True,
        postgresql_where=sa.text("status <> 'CANCELLED'"),
    )

    # Intervals that merely intersect share no start hour; the exclusion
    # constraint rejects those too. An end of 00:00 means midnight.
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        """
        ALTER TABLE bookings
        ADD CONSTRAINT ex_bookings_no_overlap
        EXCLUDE USING gist (
            court_id WITH =,
            tsrange(
                date + start_time,
                CASE WHEN end_time = time '00:00' THEN date + 1 + time '00:00' ELSE date + end_time END
            ) WITH &&
        )
        WHERE (status <> 'CANCELLED')
        """
    )


def downgrade() -> None:
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_no_overlap")
    op.drop_index("uq_bookings_active_slot", table_name="bookings")
    op.drop_index("ix_bookings_court_date", table_name="bookings")
    op.drop_index("ix_bookings_player_id", table_name="bookings")
    op.drop_index("ix_bookings_venue_id", table_name="bookings")
    op.drop_table("bookings")
