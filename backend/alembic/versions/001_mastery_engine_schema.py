"""Mastery engine schema

Creates the tables of the meditation mastery engine:
techniques, practice_sessions, mastery_records, mastery_history and
practice_streaks.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ===========================================
    # Create techniques table
    # ===========================================
    op.create_table(
        "techniques",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("tradition", sa.String(100), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # ===========================================
    # Create practice_sessions table
    # ===========================================
    op.create_table(
        "practice_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column(
            "technique_id",
            sa.Integer(),
            sa.ForeignKey("techniques.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        # Raw and weighted minutes
        sa.Column("duration_minutes", sa.Float(), nullable=False),
        sa.Column("effective_minutes", sa.Float(), nullable=False),
        sa.Column("streak_applied", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("manual_entry", sa.Boolean(), nullable=False, server_default=sa.false()),
        # Timestamps
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # ===========================================
    # Create mastery_records table
    # ===========================================
    op.create_table(
        "mastery_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column(
            "technique_id",
            sa.Integer(),
            sa.ForeignKey("techniques.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "cumulative_effective_minutes", sa.Float(), nullable=False, server_default="0"
        ),
        sa.Column("mastery_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_practiced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_decay_applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "technique_id", name="uq_mastery_user_technique"),
    )

    # ===========================================
    # Create mastery_history table
    # ===========================================
    op.create_table(
        "mastery_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False, index=True),
        sa.Column(
            "technique_id",
            sa.Integer(),
            sa.ForeignKey("techniques.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("mastery_score", sa.Float(), nullable=False),
        sa.Column("cumulative_effective_minutes", sa.Float(), nullable=False),
    )
    op.create_index(
        "ix_mastery_history_technique_recorded",
        "mastery_history",
        ["technique_id", "recorded_at"],
    )

    # ===========================================
    # Create practice_streaks table
    # ===========================================
    op.create_table(
        "practice_streaks",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_practiced_on", sa.Date(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("practice_streaks")
    op.drop_index("ix_mastery_history_technique_recorded", table_name="mastery_history")
    op.drop_table("mastery_history")
    op.drop_table("mastery_records")
    op.drop_table("practice_sessions")
    op.drop_table("techniques")
