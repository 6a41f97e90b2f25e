"""create raffle tables

Revision ID: 0001_create_raffle_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_create_raffle_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "raffle_rounds",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("owner_address", sa.String(length=255), nullable=False),
        sa.Column("entrance_fee", sa.BigInteger(), nullable=False),
        sa.Column("winner_share_percent", sa.Integer(), nullable=False),
        sa.Column("interval_seconds", sa.Integer(), nullable=False),
        sa.Column("number_of_winners", sa.Integer(), nullable=False),
        sa.Column(
            "state",
            sa.Enum(
                "OPEN",
                "CALCULATING",
                name="raffle_state",
                native_enum=False,
                length=20,
            ),
            nullable=False,
        ),
        sa.Column("last_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pending_request_id", sa.String(length=255), nullable=True),
        sa.Column("pending_word_count", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "winner_share_percent BETWEEN 0 AND 100",
            name=op.f("ck_raffle_rounds_winner_share_range"),
        ),
        sa.CheckConstraint(
            "entrance_fee > 0", name=op.f("ck_raffle_rounds_entrance_fee_positive")
        ),
        sa.CheckConstraint(
            "interval_seconds > 0", name=op.f("ck_raffle_rounds_interval_positive")
        ),
        sa.CheckConstraint(
            "number_of_winners > 0", name=op.f("ck_raffle_rounds_winners_positive")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_rounds")),
        sa.UniqueConstraint("name", name="raffle_rounds_name_key"),
    )
    op.create_table(
        "raffle_tickets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(
            ["round_id"],
            ["raffle_rounds.id"],
            name=op.f("fk_raffle_tickets_round_id_raffle_rounds"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_tickets")),
        sa.UniqueConstraint("round_id", "position", name="uq_raffle_ticket_position"),
    )
    op.create_index(
        op.f("ix_raffle_tickets_round_id"), "raffle_tickets", ["round_id"], unique=False
    )
    op.create_table(
        "raffle_recent_winners",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("round_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(
            ["round_id"],
            ["raffle_rounds.id"],
            name=op.f("fk_raffle_recent_winners_round_id_raffle_rounds"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_raffle_recent_winners")),
    )
    op.create_index(
        op.f("ix_raffle_recent_winners_round_id"),
        "raffle_recent_winners",
        ["round_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(
        op.f("ix_raffle_recent_winners_round_id"), table_name="raffle_recent_winners"
    )
    op.drop_table("raffle_recent_winners")
    op.drop_index(op.f("ix_raffle_tickets_round_id"), table_name="raffle_tickets")
    op.drop_table("raffle_tickets")
    op.drop_table("raffle_rounds")
