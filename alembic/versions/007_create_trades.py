"""007: create trades table

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # order_id / notification_id UNIQUE: a source settles at most once
    op.execute("""
        CREATE TABLE trades (
            id                      VARCHAR(64)   PRIMARY KEY,
            game_id                 VARCHAR(64)   NOT NULL REFERENCES games(id),
            venture_id              VARCHAR(64)   NOT NULL REFERENCES ventures(id),
            market_type             VARCHAR(10)   NOT NULL,
            buyer_participant_id    VARCHAR(64)   NOT NULL REFERENCES participants(id),
            seller_participant_id   VARCHAR(64)   REFERENCES participants(id),
            qty                     BIGINT        NOT NULL,
            price_per_share         BIGINT        NOT NULL,
            order_id                VARCHAR(64),
            notification_id         VARCHAR(64),
            seller_realized_pnl     NUMERIC(20,4),
            created_at              TIMESTAMPTZ   NOT NULL DEFAULT clock_timestamp(),
            CONSTRAINT uq_trades_order_id UNIQUE (order_id),
            CONSTRAINT uq_trades_notification_id UNIQUE (notification_id),
            CONSTRAINT ck_trades_market_type CHECK (market_type IN ('primary', 'secondary')),
            CONSTRAINT ck_trades_qty_gt_0 CHECK (qty > 0),
            CONSTRAINT ck_trades_price_gt_0 CHECK (price_per_share > 0),
            CONSTRAINT ck_trades_source CHECK (
                (market_type = 'primary' AND seller_participant_id IS NULL)
                OR (market_type = 'secondary' AND seller_participant_id IS NOT NULL
                    AND notification_id IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_trades_venture_time ON trades (venture_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_trades_game_time ON trades (game_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_trades_buyer ON trades (buyer_participant_id);")
    op.execute("CREATE INDEX idx_trades_seller ON trades (seller_participant_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
