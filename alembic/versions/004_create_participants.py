"""004: create participants table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE participants (
            id              VARCHAR(64) PRIMARY KEY,
            game_id         VARCHAR(64) NOT NULL REFERENCES games(id),
            user_id         VARCHAR(64) NOT NULL REFERENCES users(id),
            role            VARCHAR(20) NOT NULL,
            status          VARCHAR(20) NOT NULL DEFAULT 'pending',
            initial_budget  BIGINT      NOT NULL DEFAULT 0,
            current_cash    BIGINT      NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_participants_game_user UNIQUE (game_id, user_id),
            CONSTRAINT ck_participants_role CHECK (role IN ('founder', 'angel', 'vc', 'organizer')),
            CONSTRAINT ck_participants_status CHECK (status IN ('pending', 'active', 'suspended')),
            CONSTRAINT ck_participants_cash_gte_0 CHECK (current_cash >= 0),
            CONSTRAINT ck_participants_budget_gte_0 CHECK (initial_budget >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_participants_game_role ON participants (game_id, role);")
    op.execute("""
        CREATE TRIGGER trg_participants_updated_at
            BEFORE UPDATE ON participants
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS participants CASCADE;")
