"""Create memes and bids tables

Revision ID: 5e1c0a7d9b2f
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "5e1c0a7d9b2f"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "memes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column(
            "tags",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("owner_id", sa.String(50), nullable=False),
        sa.Column("upvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("downvotes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("highest_bid", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("highest_bidder", sa.String(50), nullable=False, server_default=""),
        sa.Column("caption", sa.Text(), nullable=False, server_default=""),
        sa.Column("vibe", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_memes_created_at", "memes", ["created_at"])
    op.create_index("ix_memes_upvotes", "memes", ["upvotes"])

    op.create_table(
        "bids",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "meme_id",
            sa.String(36),
            sa.ForeignKey("memes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(50), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_bids_meme_id", "bids", ["meme_id"])


def downgrade() -> None:
    op.drop_index("ix_bids_meme_id", table_name="bids")
    op.drop_table("bids")
    op.drop_index("ix_memes_upvotes", table_name="memes")
    op.drop_index("ix_memes_created_at", table_name="memes")
    op.drop_table("memes")
