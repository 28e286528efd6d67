"""create_session_records_table

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-03-01 09:00:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a1c3e5f7b9d2"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create session_records table."""
    op.create_table(
        "session_records",
        sa.Column(
            "key",
            sa.String(length=255),
            nullable=False,
            comment="Key prefix + session id",
        ),
        sa.Column(
            "version",
            sa.Integer(),
            nullable=False,
            comment="Optimistic concurrency counter",
        ),
        sa.Column(
            "payload",
            sa.Text(),
            nullable=False,
            comment="Encoded session record (JSON)",
        ),
        sa.Column(
            "expires_at",
            sa.Double(),
            nullable=False,
            comment="Expiry as epoch seconds (UTC)",
        ),
        # Timestamps from BaseMutableModel
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("key"),
    )
    op.create_index(
        "ix_session_records_expires_at",
        "session_records",
        ["expires_at"],
        unique=False,
    )


def downgrade() -> None:
    """Drop session_records table."""
    op.drop_index("ix_session_records_expires_at", table_name="session_records")
    op.drop_table("session_records")
