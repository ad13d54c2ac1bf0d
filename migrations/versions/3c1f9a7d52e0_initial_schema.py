"""initial_schema

Create the vote engine schema:
- Voters (identity derived from the display name, voted-item set)
- Items (candidates, created outside the engine)
- Votes (pending/confirmed/rejected audit trail, one confirmed per pair)

Revision ID: 3c1f9a7d52e0
Revises:
Create Date: 2025-11-04 10:12:45.318204

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3c1f9a7d52e0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Enable required extensions
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Create ENUM types (idempotent)
    op.execute("""
        DO $$ BEGIN
            CREATE TYPE item_status AS ENUM ('active', 'inactive');
        EXCEPTION
            WHEN duplicate_object THEN null;
        END $$;
    """)

    op.execute("""
        DO $$ BEGIN
            CREATE TYPE vote_status AS ENUM ('pending', 'confirmed', 'rejected');
        EXCEPTION
            WHEN duplicate_object THEN null;
        END $$;
    """)

    # ========================================================================
    # VOTERS table
    # ========================================================================
    op.create_table(
        "voters",
        sa.Column("key", sa.String(50), nullable=False),
        sa.Column("display_name", sa.String(50), nullable=False),
        sa.Column(
            "voted_items",
            postgresql.ARRAY(sa.String(255)),
            nullable=False,
            server_default=sa.text("'{}'::varchar[]"),
        ),
        sa.Column("vote_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_vote_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("key"),
        sa.CheckConstraint("vote_count >= 0", name="voter_vote_count_non_negative"),
    )

    # ========================================================================
    # ITEMS table
    # ========================================================================
    op.create_table(
        "items",
        sa.Column("id", sa.String(255), nullable=False),
        sa.Column("owner_id", sa.String(50), nullable=True),
        sa.Column(
            "status",
            postgresql.ENUM("active", "inactive", name="item_status", create_type=False),
            nullable=False,
            server_default="active",
        ),
        sa.Column("total_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unique_voters", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_vote_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("total_votes >= 0", name="item_total_votes_non_negative"),
        sa.CheckConstraint(
            "unique_voters >= 0", name="item_unique_voters_non_negative"
        ),
    )
    op.create_index("idx_items_status", "items", ["status"])

    # ========================================================================
    # VOTES table (no foreign keys: the consistency sweep handles orphans)
    # ========================================================================
    op.create_table(
        "votes",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("uuid_generate_v4()"),
            nullable=False,
        ),
        sa.Column("voter_id", sa.String(50), nullable=False),
        sa.Column("item_id", sa.String(255), nullable=False),
        sa.Column("owner_id", sa.String(50), nullable=True),
        sa.Column("timestamp", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "status",
            postgresql.ENUM(
                "pending", "confirmed", "rejected", name="vote_status", create_type=False
            ),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "conflict_resolution",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_votes_voter_id", "votes", ["voter_id"])
    op.create_index("idx_votes_item_status", "votes", ["item_id", "status"])
    op.create_index("idx_votes_timestamp", "votes", [sa.text('"timestamp" DESC')])
    op.create_index(
        "idx_votes_unique_confirmed_pair",
        "votes",
        ["voter_id", "item_id"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_votes_unique_confirmed_pair", table_name="votes")
    op.drop_index("idx_votes_timestamp", table_name="votes")
    op.drop_index("idx_votes_item_status", table_name="votes")
    op.drop_index("idx_votes_voter_id", table_name="votes")
    op.drop_table("votes")

    op.drop_index("idx_items_status", table_name="items")
    op.drop_table("items")

    op.drop_table("voters")

    op.execute("DROP TYPE IF EXISTS vote_status")
    op.execute("DROP TYPE IF EXISTS item_status")
