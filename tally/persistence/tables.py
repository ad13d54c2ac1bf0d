"""SQLAlchemy table definitions for the vote engine.

These table definitions are used with SQLAlchemy Core.
They match the schema defined in Alembic migrations.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Enum,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, TIMESTAMP, UUID

# Metadata object for all tables
metadata = MetaData()

# ============================================================================
# VOTERS TABLE
# ============================================================================
voters_table = Table(
    "voters",
    metadata,
    Column("key", String(50), primary_key=True),  # Derived from display name
    Column("display_name", String(50), nullable=False),
    Column(
        "voted_items",
        ARRAY(String(255)),
        nullable=False,
        server_default=text("'{}'::varchar[]"),
    ),
    Column("vote_count", Integer, nullable=False, server_default="0"),
    Column("last_vote_at", TIMESTAMP(timezone=True), nullable=True),
    Column("version", Integer, nullable=False, server_default="0"),
    Column(
        "created_at", TIMESTAMP(timezone=True), nullable=False, server_default="NOW()"
    ),
    CheckConstraint("vote_count >= 0", name="voter_vote_count_non_negative"),
)

# ============================================================================
# ITEMS TABLE (created and deleted outside the engine)
# ============================================================================
items_table = Table(
    "items",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("owner_id", String(50), nullable=True),  # Voter key of the submitter
    Column(
        "status",
        Enum("active", "inactive", name="item_status", create_type=False),
        nullable=False,
        server_default="active",
    ),
    Column("total_votes", Integer, nullable=False, server_default="0"),
    Column("unique_voters", Integer, nullable=False, server_default="0"),
    Column("last_vote_at", TIMESTAMP(timezone=True), nullable=True),
    Column(
        "created_at", TIMESTAMP(timezone=True), nullable=False, server_default="NOW()"
    ),
    CheckConstraint("total_votes >= 0", name="item_total_votes_non_negative"),
    CheckConstraint("unique_voters >= 0", name="item_unique_voters_non_negative"),
)

Index("idx_items_status", items_table.c.status)

# ============================================================================
# VOTES TABLE
# ============================================================================
votes_table = Table(
    "votes",
    metadata,
    Column("id", UUID, primary_key=True, server_default="uuid_generate_v4()"),
    Column("voter_id", String(50), nullable=False),
    Column("item_id", String(255), nullable=False),
    Column("owner_id", String(50), nullable=True),
    Column("timestamp", TIMESTAMP(timezone=True), nullable=False),
    Column(
        "status",
        Enum("pending", "confirmed", "rejected", name="vote_status", create_type=False),
        nullable=False,
        server_default="pending",
    ),
    Column("version", Integer, nullable=False, server_default="1"),
    Column("conflict_resolution", JSONB, nullable=True),
)

Index("idx_votes_voter_id", votes_table.c.voter_id)
Index("idx_votes_item_status", votes_table.c.item_id, votes_table.c.status)
Index("idx_votes_timestamp", votes_table.c.timestamp.desc())

# At most one confirmed vote per (voter, item). Scoped to confirmed status so
# pending and rejected attempts stay as audit records.
Index(
    "idx_votes_unique_confirmed_pair",
    votes_table.c.voter_id,
    votes_table.c.item_id,
    unique=True,
    postgresql_where=votes_table.c.status == "confirmed",
)
