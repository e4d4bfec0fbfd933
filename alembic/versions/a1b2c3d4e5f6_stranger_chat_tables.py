"""queue, pairings, rooms, messages, friends, blocks, reports

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "chat_rooms",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("slot_1", sa.String(80), nullable=False),
        sa.Column("slot_2", sa.String(80), nullable=False),
        sa.Column("room_type", sa.String(), nullable=False, server_default="random"),
        sa.Column("pairing_id", sa.Uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_temporary_closure", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by", sa.String(80), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pairing_id"),
        sa.CheckConstraint("slot_1 <> slot_2", name="ck_chat_rooms_distinct_slots"),
        sa.CheckConstraint(
            "(is_active AND closed_at IS NULL) OR (NOT is_active AND closed_at IS NOT NULL)",
            name="ck_chat_rooms_active_closed_at",
        ),
    )
    op.create_index(op.f("ix_chat_rooms_slot_1"), "chat_rooms", ["slot_1"], unique=False)
    op.create_index(op.f("ix_chat_rooms_slot_2"), "chat_rooms", ["slot_2"], unique=False)

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("room_id", sa.Uuid(), nullable=False),
        sa.Column("sender", sa.String(80), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("reply_to_id", sa.Uuid(), nullable=True),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("room_id", "seq", name="uq_chat_messages_room_seq"),
        sa.ForeignKeyConstraint(["room_id"], ["chat_rooms.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["reply_to_id"], ["chat_messages.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_chat_messages_room_id"), "chat_messages", ["room_id"], unique=False)
    op.create_index(op.f("ix_chat_messages_sender"), "chat_messages", ["sender"], unique=False)
    op.create_index(op.f("ix_chat_messages_reply_to_id"), "chat_messages", ["reply_to_id"], unique=False)

    op.create_table(
        "queue_entries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("participant", sa.String(80), nullable=False),
        sa.Column("filters", sa.JSON(), nullable=False),
        sa.Column("profile", sa.JSON(), nullable=False),
        sa.Column("connection_hint", sa.String(), nullable=True),
        sa.Column("enqueued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("participant"),
    )
    op.create_index(op.f("ix_queue_entries_enqueued_at"), "queue_entries", ["enqueued_at"], unique=False)
    op.create_index(op.f("ix_queue_entries_last_seen_at"), "queue_entries", ["last_seen_at"], unique=False)

    op.create_table(
        "pairings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("participant_a", sa.String(80), nullable=False),
        sa.Column("participant_b", sa.String(80), nullable=False),
        sa.Column("room_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["room_id"], ["chat_rooms.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_pairings_participant_a"), "pairings", ["participant_a"], unique=False)
    op.create_index(op.f("ix_pairings_participant_b"), "pairings", ["participant_b"], unique=False)
    op.create_index(op.f("ix_pairings_room_id"), "pairings", ["room_id"], unique=False)
    op.create_index(op.f("ix_pairings_created_at"), "pairings", ["created_at"], unique=False)

    op.create_table(
        "friend_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("sender", sa.String(80), nullable=False),
        sa.Column("receiver", sa.String(80), nullable=False),
        sa.Column("chat_room_id", sa.Uuid(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("pending_key", sa.String(170), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pending_key"),
        sa.ForeignKeyConstraint(["chat_room_id"], ["chat_rooms.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_friend_requests_sender"), "friend_requests", ["sender"], unique=False)
    op.create_index(op.f("ix_friend_requests_receiver"), "friend_requests", ["receiver"], unique=False)
    op.create_index(op.f("ix_friend_requests_status"), "friend_requests", ["status"], unique=False)

    op.create_table(
        "friendships",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("participant_low", sa.String(80), nullable=False),
        sa.Column("participant_high", sa.String(80), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("chat_room_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("unfriended_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("participant_low", "participant_high", name="uq_friendships_pair"),
        sa.ForeignKeyConstraint(["chat_room_id"], ["chat_rooms.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_friendships_participant_low"), "friendships", ["participant_low"], unique=False)
    op.create_index(op.f("ix_friendships_participant_high"), "friendships", ["participant_high"], unique=False)

    op.create_table(
        "blocks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("blocker", sa.String(80), nullable=False),
        sa.Column("blocked", sa.String(80), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("blocker", "blocked", name="uq_blocks_blocker_blocked"),
    )
    op.create_index(op.f("ix_blocks_blocker"), "blocks", ["blocker"], unique=False)
    op.create_index(op.f("ix_blocks_blocked"), "blocks", ["blocked"], unique=False)

    op.create_table(
        "reports",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("reporter", sa.String(80), nullable=False),
        sa.Column("reported", sa.String(80), nullable=False),
        sa.Column("category", sa.String(), nullable=False, server_default="other"),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("chat_room_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["chat_room_id"], ["chat_rooms.id"], ondelete="SET NULL"),
    )
    op.create_index(op.f("ix_reports_reporter"), "reports", ["reporter"], unique=False)
    op.create_index(op.f("ix_reports_reported"), "reports", ["reported"], unique=False)

    op.create_table(
        "saved_filters",
        sa.Column("participant", sa.String(80), nullable=False),
        sa.Column("filters", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("participant"),
    )


def downgrade() -> None:
    op.drop_table("saved_filters")
    op.drop_index(op.f("ix_reports_reported"), table_name="reports")
    op.drop_index(op.f("ix_reports_reporter"), table_name="reports")
    op.drop_table("reports")
    op.drop_index(op.f("ix_blocks_blocked"), table_name="blocks")
    op.drop_index(op.f("ix_blocks_blocker"), table_name="blocks")
    op.drop_table("blocks")
    op.drop_index(op.f("ix_friendships_participant_high"), table_name="friendships")
    op.drop_index(op.f("ix_friendships_participant_low"), table_name="friendships")
    op.drop_table("friendships")
    op.drop_index(op.f("ix_friend_requests_status"), table_name="friend_requests")
    op.drop_index(op.f("ix_friend_requests_receiver"), table_name="friend_requests")
    op.drop_index(op.f("ix_friend_requests_sender"), table_name="friend_requests")
    op.drop_table("friend_requests")
    op.drop_index(op.f("ix_pairings_created_at"), table_name="pairings")
    op.drop_index(op.f("ix_pairings_room_id"), table_name="pairings")
    op.drop_index(op.f("ix_pairings_participant_b"), table_name="pairings")
    op.drop_index(op.f("ix_pairings_participant_a"), table_name="pairings")
    op.drop_table("pairings")
    op.drop_index(op.f("ix_queue_entries_last_seen_at"), table_name="queue_entries")
    op.drop_index(op.f("ix_queue_entries_enqueued_at"), table_name="queue_entries")
    op.drop_table("queue_entries")
    op.drop_index(op.f("ix_chat_messages_reply_to_id"), table_name="chat_messages")
    op.drop_index(op.f("ix_chat_messages_sender"), table_name="chat_messages")
    op.drop_index(op.f("ix_chat_messages_room_id"), table_name="chat_messages")
    op.drop_table("chat_messages")
    op.drop_index(op.f("ix_chat_rooms_slot_2"), table_name="chat_rooms")
    op.drop_index(op.f("ix_chat_rooms_slot_1"), table_name="chat_rooms")
    op.drop_table("chat_rooms")
