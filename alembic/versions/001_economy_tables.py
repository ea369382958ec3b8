"""Economy tables.

Creates wallets, pets, transactions, energy_ledger, production_sessions,
fusion_attempts, fusion_materials, mine_challenges and achievement_claims.

Revision ID: 001_economy_tables
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_economy_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Wallets ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS wallets (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) UNIQUE NOT NULL,
            gem_balance NUMERIC(20, 2) NOT NULL DEFAULT 0,
            shell_balance NUMERIC(20, 2) NOT NULL DEFAULT 0,
            mine_ticket INTEGER NOT NULL DEFAULT 0,
            energy INTEGER NOT NULL DEFAULT 100,
            last_energy_update TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            newbie_granted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallets_gem_non_negative CHECK (gem_balance >= 0),
            CONSTRAINT ck_wallets_shell_non_negative CHECK (shell_balance >= 0),
            CONSTRAINT ck_wallets_ticket_non_negative CHECK (mine_ticket >= 0),
            CONSTRAINT ck_wallets_energy_range CHECK (energy >= 0 AND energy <= 100)
        )
    """)

    # --- Pets ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS pets (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            name VARCHAR(32) NOT NULL,
            rarity VARCHAR(24) NOT NULL,
            level INTEGER NOT NULL DEFAULT 1,
            exp BIGINT NOT NULL DEFAULT 0,
            bond_tag VARCHAR(16),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_pets_level_range CHECK (level >= 1 AND level <= 30),
            CONSTRAINT ck_pets_exp_non_negative CHECK (exp >= 0)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_pets_user_id ON pets(user_id)")

    # --- Currency audit trail ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            type VARCHAR(24) NOT NULL,
            currency VARCHAR(24) NOT NULL,
            amount NUMERIC(20, 2) NOT NULL,
            balance_after NUMERIC(20, 2) NOT NULL,
            source VARCHAR(32) NOT NULL,
            description VARCHAR(255),
            idempotency_key VARCHAR(128) UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_amount_non_negative CHECK (amount >= 0)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_transactions_user_created
        ON transactions(user_id, created_at)
    """)

    # --- Energy audit trail ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS energy_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            amount INTEGER NOT NULL,
            applied INTEGER NOT NULL,
            balance_after INTEGER NOT NULL,
            source VARCHAR(24) NOT NULL,
            description VARCHAR(255),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_energy_ledger_user_created
        ON energy_ledger(user_id, created_at)
    """)

    # --- Production sessions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS production_sessions (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            pet_id BIGINT REFERENCES pets(id) ON DELETE SET NULL,
            start_time TIMESTAMPTZ NOT NULL,
            end_time TIMESTAMPTZ NOT NULL,
            closed_at TIMESTAMPTZ,
            is_online BOOLEAN NOT NULL DEFAULT true,
            energy_cost_per_hour INTEGER NOT NULL,
            gem_produced NUMERIC(20, 2) NOT NULL DEFAULT 0,
            shell_produced NUMERIC(20, 2) NOT NULL DEFAULT 0,
            energy_consumed INTEGER NOT NULL DEFAULT 0,
            exp_granted INTEGER NOT NULL DEFAULT 0
        )
    """)
    # At most one open session per user
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_production_sessions_open
        ON production_sessions(user_id) WHERE closed_at IS NULL
    """)

    # --- Fusion ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS fusion_attempts (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            target_rarity VARCHAR(24) NOT NULL,
            shell_cost NUMERIC(20, 2) NOT NULL,
            use_protection BOOLEAN NOT NULL DEFAULT false,
            success_rate DOUBLE PRECISION NOT NULL,
            roll DOUBLE PRECISION NOT NULL,
            success BOOLEAN NOT NULL,
            result_pet_id BIGINT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_fusion_attempts_user_created
        ON fusion_attempts(user_id, created_at)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS fusion_materials (
            id BIGSERIAL PRIMARY KEY,
            fusion_attempt_id BIGINT NOT NULL REFERENCES fusion_attempts(id) ON DELETE CASCADE,
            pet_id BIGINT NOT NULL,
            pet_rarity VARCHAR(24) NOT NULL,
            pet_level INTEGER NOT NULL,
            pet_exp BIGINT NOT NULL
        )
    """)

    # --- Mine challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS mine_challenges (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            spot_level INTEGER NOT NULL,
            ticket_cost INTEGER NOT NULL,
            energy_cost INTEGER NOT NULL,
            start_time TIMESTAMPTZ NOT NULL,
            end_time TIMESTAMPTZ NOT NULL,
            claimed BOOLEAN NOT NULL DEFAULT false,
            claimed_at TIMESTAMPTZ,
            settled_by VARCHAR(16),
            roll DOUBLE PRECISION,
            gem_reward NUMERIC(20, 2),
            shell_reward NUMERIC(20, 2)
        )
    """)
    # At most one unclaimed challenge per user
    op.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS uq_mine_challenges_unclaimed
        ON mine_challenges(user_id) WHERE NOT claimed
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_mine_challenges_due
        ON mine_challenges(claimed, end_time)
    """)

    # --- Achievement claims ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS achievement_claims (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            achievement_id VARCHAR(32) NOT NULL,
            gem_reward NUMERIC(20, 2) NOT NULL,
            shell_reward NUMERIC(20, 2) NOT NULL,
            claimed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_achievement_claims_user_achievement UNIQUE (user_id, achievement_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS achievement_claims CASCADE")
    op.execute("DROP TABLE IF EXISTS mine_challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS fusion_materials CASCADE")
    op.execute("DROP TABLE IF EXISTS fusion_attempts CASCADE")
    op.execute("DROP TABLE IF EXISTS production_sessions CASCADE")
    op.execute("DROP TABLE IF EXISTS energy_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS transactions CASCADE")
    op.execute("DROP TABLE IF EXISTS pets CASCADE")
    op.execute("DROP TABLE IF EXISTS wallets CASCADE")
