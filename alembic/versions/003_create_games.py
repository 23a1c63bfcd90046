"""003: create games and game_roles tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE games (
            id                      VARCHAR(64)  PRIMARY KEY,
            name                    VARCHAR(200) NOT NULL,
            owner_user_id           VARCHAR(64)  NOT NULL REFERENCES users(id),
            status                  VARCHAR(20)  NOT NULL DEFAULT 'draft',
            currency                VARCHAR(3)   NOT NULL DEFAULT 'USD',
            locale                  VARCHAR(10)  NOT NULL DEFAULT 'en',
            starts_at               TIMESTAMPTZ,
            ends_at                 TIMESTAMPTZ,
            allow_secondary         BOOLEAN      NOT NULL DEFAULT TRUE,
            circuit_breaker         BOOLEAN      NOT NULL DEFAULT TRUE,
            circuit_breaker_active  BOOLEAN      NOT NULL DEFAULT FALSE,
            circuit_breaker_until   TIMESTAMPTZ,
            max_price_per_share     BIGINT,
            created_at              TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_games_status CHECK (
                status IN ('draft', 'pre_market', 'open', 'closed', 'results')
            ),
            CONSTRAINT ck_games_max_price_gt_0 CHECK (
                max_price_per_share IS NULL OR max_price_per_share > 0
            )
        );
    """)
    op.execute("CREATE INDEX idx_games_ends_at ON games (ends_at) WHERE status <> 'results';")
    op.execute("""
        CREATE TRIGGER trg_games_updated_at
            BEFORE UPDATE ON games
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("""
        CREATE TABLE game_roles (
            game_id         VARCHAR(64) NOT NULL REFERENCES games(id) ON DELETE CASCADE,
            role            VARCHAR(20) NOT NULL,
            default_budget  BIGINT      NOT NULL DEFAULT 0,
            PRIMARY KEY (game_id, role),
            CONSTRAINT ck_game_roles_role CHECK (role IN ('founder', 'angel', 'vc', 'organizer')),
            CONSTRAINT ck_game_roles_budget_gte_0 CHECK (default_budget >= 0)
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS game_roles CASCADE;")
    op.execute("DROP TABLE IF EXISTS games CASCADE;")
