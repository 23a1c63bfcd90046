"""005: create ventures and founder_members tables

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE ventures (
            id                        VARCHAR(64)   PRIMARY KEY,
            game_id                   VARCHAR(64)   NOT NULL REFERENCES games(id),
            name                      VARCHAR(200)  NOT NULL,
            description               TEXT,
            logo_url                  TEXT,
            total_shares              BIGINT        NOT NULL,
            primary_shares_remaining  BIGINT        NOT NULL,
            last_vwap_price           NUMERIC(20,4),
            created_at                TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at                TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_ventures_total_gt_0 CHECK (total_shares > 0),
            CONSTRAINT ck_ventures_remaining_range CHECK (
                primary_shares_remaining >= 0 AND primary_shares_remaining <= total_shares
            )
        );
    """)
    op.execute("CREATE INDEX idx_ventures_game ON ventures (game_id);")
    op.execute("""
        CREATE TRIGGER trg_ventures_updated_at
            BEFORE UPDATE ON ventures
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TABLE founder_members (
            venture_id      VARCHAR(64) NOT NULL REFERENCES ventures(id) ON DELETE CASCADE,
            participant_id  VARCHAR(64) NOT NULL REFERENCES participants(id),
            role            VARCHAR(10) NOT NULL DEFAULT 'member',
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_founder_members UNIQUE (venture_id, participant_id),
            CONSTRAINT ck_founder_members_role CHECK (role IN ('owner', 'member'))
        );
    """)
    op.execute("CREATE INDEX idx_founder_members_participant ON founder_members (participant_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS founder_members CASCADE;")
    op.execute("DROP TABLE IF EXISTS ventures CASCADE;")
