"""011: create circuit_breaker_events table

Revision ID: 011
Revises: 010
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "011"
down_revision: Union[str, None] = "010"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE circuit_breaker_events (
            id              BIGSERIAL     PRIMARY KEY,
            game_id         VARCHAR(64)   NOT NULL REFERENCES games(id),
            venture_id      VARCHAR(64)   REFERENCES ventures(id),
            trigger_reason  VARCHAR(32)   NOT NULL,
            old_price       NUMERIC(20,4),
            new_price       NUMERIC(20,4),
            change_pct      NUMERIC(12,2),
            active_until    TIMESTAMPTZ   NOT NULL,
            context         JSONB         NOT NULL DEFAULT '{}'::jsonb,
            resolved_at     TIMESTAMPTZ,
            resolved_by     VARCHAR(32),
            created_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW()
        );
    """)
    op.execute("""
        CREATE INDEX idx_cb_events_open
            ON circuit_breaker_events (game_id) WHERE resolved_at IS NULL;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS circuit_breaker_events CASCADE;")
