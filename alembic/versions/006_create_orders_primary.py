"""006: create orders_primary table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE orders_primary (
            id                          VARCHAR(64) PRIMARY KEY,
            game_id                     VARCHAR(64) NOT NULL REFERENCES games(id),
            venture_id                  VARCHAR(64) NOT NULL REFERENCES ventures(id),
            buyer_participant_id        VARCHAR(64) NOT NULL REFERENCES participants(id),
            qty                         BIGINT      NOT NULL,
            price_per_share             BIGINT      NOT NULL,
            status                      VARCHAR(20) NOT NULL DEFAULT 'pending',
            auto_accept_min_price       BIGINT,
            decided_by_participant_id   VARCHAR(64),
            reject_reason               VARCHAR(32),
            trade_id                    VARCHAR(64),
            created_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            decided_at                  TIMESTAMPTZ,
            updated_at                  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_orders_primary_qty_gt_0 CHECK (qty > 0),
            CONSTRAINT ck_orders_primary_price_gt_0 CHECK (price_per_share > 0),
            CONSTRAINT ck_orders_primary_status CHECK (
                status IN ('pending', 'accepted', 'rejected', 'canceled', 'expired')
            ),
            CONSTRAINT ck_orders_primary_reason CHECK (
                reject_reason IS NULL OR reject_reason IN (
                    'FOUNDER_REJECTED', 'INSUFFICIENT_SHARES', 'INSUFFICIENT_CASH',
                    'BUYER_INACTIVE', 'VENTURE_ORPHANED', 'BUYER_REMOVED',
                    'BUYER_IS_FOUNDER'
                )
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_orders_primary_venture_pending
            ON orders_primary (venture_id) WHERE status = 'pending';
    """)
    op.execute("CREATE INDEX idx_orders_primary_buyer ON orders_primary (buyer_participant_id);")
    op.execute("""
        CREATE TRIGGER trg_orders_primary_updated_at
            BEFORE UPDATE ON orders_primary
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders_primary CASCADE;")
