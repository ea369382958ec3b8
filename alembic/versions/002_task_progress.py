"""Task progress.

Per-user progress and claim state for daily and newbie tasks, one row per
task per period (UTC date, or ONCE).

Revision ID: 002_task_progress
Revises: 001_economy_tables
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_task_progress"
down_revision: str | None = "001_economy_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS task_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            task_id VARCHAR(32) NOT NULL,
            period VARCHAR(10) NOT NULL,
            progress BIGINT NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            claimed BOOLEAN NOT NULL DEFAULT false,
            claimed_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_task_progress_user_task_period UNIQUE (user_id, task_id, period)
        )
    """)
    # Daily reset deletes by (task_id, period)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_task_progress_task_period
        ON task_progress(task_id, period)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS task_progress CASCADE")
