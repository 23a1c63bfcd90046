"""010: create notifications table

Revision ID: 010
Revises: 009
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "010"
down_revision: Union[str, None] = "009"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE notifications (
            id                          VARCHAR(64) PRIMARY KEY,
            game_id                     VARCHAR(64) NOT NULL REFERENCES games(id),
            recipient_participant_id    VARCHAR(64) NOT NULL REFERENCES participants(id),
            sender_participant_id       VARCHAR(64) REFERENCES participants(id),
            type                        VARCHAR(40) NOT NULL,
            status                      VARCHAR(10) NOT NULL DEFAULT 'unread',
            payload                     JSONB       NOT NULL DEFAULT '{}'::jsonb,
            created_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_notifications_status CHECK (status IN ('unread', 'read', 'rejected')),
            CONSTRAINT ck_notifications_type CHECK (type IN (
                'secondary_trade_request', 'participant_approval_request',
                'primary_order_received', 'primary_order_decided',
                'secondary_trade_accepted', 'secondary_trade_rejected',
                'participant_decided', 'venture_ownership_transferred'
            ))
        );
    """)
    op.execute("""
        CREATE INDEX idx_notifications_recipient
            ON notifications (recipient_participant_id, created_at DESC);
    """)
    op.execute("""
        CREATE TRIGGER trg_notifications_updated_at
            BEFORE UPDATE ON notifications
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications CASCADE;")
