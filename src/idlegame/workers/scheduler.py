"""Periodic jobs: hourly energy regeneration, the mine settlement sweep and the
midnight (UTC) daily task reset.

Each job is a thin wrapper around a core entry point. Failures are logged and
swallowed so the next scheduled run still happens.
"""

from __future__ import annotations

import structlog
from arq import cron
from arq.connections import RedisSettings

from idlegame.config import get_settings
from idlegame.core import EconomyCore
from idlegame.logging_config import setup_logging

logger = structlog.get_logger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Build the economy core on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    ctx["core"] = EconomyCore.from_settings(settings)
    logger.info("economy_worker_started", environment=settings.environment)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    core: EconomyCore | None = ctx.get("core")
    if core is not None:
        await core.dispose()
    logger.info("economy_worker_stopped")


async def regenerate_energy(ctx: dict) -> int:  # type: ignore[type-arg]
    """Hourly: +10 energy for every wallet below capacity."""
    core: EconomyCore = ctx["core"]
    try:
        credited = await core.energy.regenerate_tick()
    except Exception:
        logger.exception("energy_regeneration_failed")
        return 0
    logger.info("energy_regeneration_done", wallets=credited)
    return credited


async def settle_mine_challenges(ctx: dict) -> int:  # type: ignore[type-arg]
    """Every few minutes: auto-claim expired mine challenges."""
    core: EconomyCore = ctx["core"]
    try:
        settled = await core.mine.settle_expired_sweep()
    except Exception:
        logger.exception("mine_sweep_failed")
        return 0
    if settled:
        logger.info("mine_sweep_done", settled=settled)
    return settled


async def reset_daily_tasks(ctx: dict) -> int:  # type: ignore[type-arg]
    """Midnight UTC: clear daily task progress from earlier days."""
    core: EconomyCore = ctx["core"]
    try:
        removed = await core.tasks.reset_daily_tasks()
    except Exception:
        logger.exception("daily_task_reset_failed")
        return 0
    logger.info("daily_task_reset_done", removed=removed)
    return removed


def sweep_minutes(interval: int) -> set[int]:
    return set(range(0, 60, interval))


_settings = get_settings()


class WorkerSettings:
    """arq worker settings for the economy scheduler."""

    functions = [regenerate_energy, settle_mine_challenges, reset_daily_tasks]
    cron_jobs = [
        cron(regenerate_energy, minute={_settings.energy_regen_minute}, second={0}),
        cron(settle_mine_challenges, minute=sweep_minutes(_settings.mine_sweep_interval_minutes), second={0}),
        cron(reset_daily_tasks, hour={0}, minute={0}, second={0}),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    max_jobs = 4
    job_timeout = 300
