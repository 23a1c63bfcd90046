"""008: create positions table

Revision ID: 008
Revises: 007
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE positions (
            participant_id  VARCHAR(64)   NOT NULL REFERENCES participants(id),
            venture_id      VARCHAR(64)   NOT NULL REFERENCES ventures(id),
            qty_total       BIGINT        NOT NULL DEFAULT 0,
            avg_cost        NUMERIC(20,4) NOT NULL DEFAULT 0,
            updated_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            PRIMARY KEY (participant_id, venture_id),
            CONSTRAINT ck_positions_qty_gte_0 CHECK (qty_total >= 0),
            CONSTRAINT ck_positions_avg_cost_gte_0 CHECK (avg_cost >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_positions_venture ON positions (venture_id);")
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
