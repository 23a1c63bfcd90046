"""009: create ledger_entries table

Revision ID: 009
Revises: 008
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "009"
down_revision: Union[str, None] = "008"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ledger_entries (
            id              BIGSERIAL   PRIMARY KEY,
            participant_id  VARCHAR(64) NOT NULL REFERENCES participants(id),
            game_id         VARCHAR(64) NOT NULL REFERENCES games(id),
            entry_type      VARCHAR(32) NOT NULL,
            amount          BIGINT      NOT NULL,
            balance_after   BIGINT      NOT NULL,
            reference_type  VARCHAR(32),
            reference_id    VARCHAR(64),
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ledger_entries_type CHECK (
                entry_type IN ('PRIMARY_PURCHASE', 'SECONDARY_PURCHASE', 'SECONDARY_SALE')
            ),
            CONSTRAINT ck_ledger_entries_balance_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_ledger_entries_participant ON ledger_entries (participant_id, id DESC);"
    )
    op.execute("CREATE INDEX idx_ledger_entries_reference ON ledger_entries (reference_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
