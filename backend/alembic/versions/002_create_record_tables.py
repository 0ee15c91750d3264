"""create record tables: personal_info, travel_history, flights, employers, education, addresses

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

# Tables with a plain user index; personal_info gets a unique constraint instead
INDEXED_TABLES = ("travel_history", "flights", "employers", "education", "addresses")


def _owner(unique: bool = False) -> sa.Column:
    return sa.Column(
        "user_id",
        sa.String(36),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=unique,
    )


def _created_at() -> sa.Column:
    # Tie-breaker for the list order; naive UTC
    return sa.Column("created_at", sa.DateTime, nullable=False)


def upgrade() -> None:
    # --- personal_info: one row per user, passport number Fernet-encrypted ---
    op.create_table(
        "personal_info",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(unique=True),
        sa.Column("full_name", sa.Text, nullable=True),
        sa.Column("passport_number_enc", sa.Text, nullable=True),
        sa.Column("dob", sa.Date, nullable=True),
    )

    op.create_table(
        "travel_history",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        _created_at(),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("destination", sa.Text, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
    )

    op.create_table(
        "flights",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        _created_at(),
        sa.Column("flight_number", sa.String(20), nullable=False),
        sa.Column("airline", sa.Text, nullable=False),
        sa.Column("departure_airport", sa.Text, nullable=False),
        sa.Column("arrival_airport", sa.Text, nullable=False),
        # Naive UTC timestamps
        sa.Column("departure_time", sa.DateTime, nullable=True),
        sa.Column("arrival_time", sa.DateTime, nullable=True),
        sa.Column("gate", sa.String(20), nullable=True),
        sa.Column("status", sa.String(50), nullable=True),
    )

    op.create_table(
        "employers",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        _created_at(),
        sa.Column("company_name", sa.Text, nullable=False),
        sa.Column("role", sa.Text, nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
    )

    op.create_table(
        "education",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        _created_at(),
        sa.Column("institution", sa.Text, nullable=False),
        sa.Column("degree", sa.Text, nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=True),
    )

    op.create_table(
        "addresses",
        sa.Column("id", sa.String(36), primary_key=True),
        _owner(),
        _created_at(),
        sa.Column("address", sa.Text, nullable=False),
        sa.Column("city", sa.Text, nullable=False),
        sa.Column("state", sa.Text, nullable=True),
        sa.Column("country", sa.Text, nullable=False),
        sa.Column("from_date", sa.Date, nullable=False),
        sa.Column("to_date", sa.Date, nullable=True),
    )

    for table in INDEXED_TABLES:
        op.create_index(f"ix_{table}_user_id", table, ["user_id"])


def downgrade() -> None:
    for table in reversed(INDEXED_TABLES):
        op.drop_index(f"ix_{table}_user_id", table_name=table)
        op.drop_table(table)
    op.drop_table("personal_info")
