"""Task progress, reward claims and the daily reset.

Production claims, fusion attempts and mine claims report progress here from
inside their own unit of work, so progress commits or rolls back with the
event that earned it. A claim marks the row and pays every reward in one unit
of work. Daily rows are keyed by UTC date; the midnight reset deletes rows of
earlier days.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from idlegame.db.models import Currency, EnergySource, Pet, Rarity, TaskProgress, TransactionType
from idlegame.errors import AlreadyClaimed, InvalidAmount, NotYetComplete, TaskNotFound
from idlegame.ledger import Ledger
from idlegame.pets.schemas import PetView
from idlegame.pets.service import pick_name
from idlegame.tasks.catalog import (
    DAILY,
    DAILY_TASK_IDS,
    ONCE_PERIOD,
    REWARD_ENERGY,
    REWARD_GEM,
    REWARD_PET_EGG,
    REWARD_SHELL,
    TASKS,
    TASKS_BY_ID,
)
from idlegame.tasks.schemas import TaskReward, TaskView

logger = logging.getLogger(__name__)

TASK_SOURCE = "TASK"

_REWARD_CURRENCY = {REWARD_GEM: Currency.GEM, REWARD_SHELL: Currency.SHELL}


def task_period(task: dict, now: datetime) -> str:
    """Progress bucket for ``task`` at ``now``: the UTC date, or ONCE."""
    if task["kind"] == DAILY:
        return now.astimezone(timezone.utc).date().isoformat()
    return ONCE_PERIOD


class TaskService:
    def __init__(self, ledger: Ledger, rng: random.Random) -> None:
        self._ledger = ledger
        self._rng = rng

    async def list(self, user_id: str) -> list[TaskView]:
        now = self._ledger.clock()
        periods = {task_period(task, now) for task in TASKS}
        async with self._ledger.read_session() as db:
            result = await db.execute(
                select(TaskProgress).where(TaskProgress.user_id == user_id, TaskProgress.period.in_(periods))
            )
            rows = {(row.task_id, row.period): row for row in result.scalars().all()}

        views = []
        for task in TASKS:
            period = task_period(task, now)
            row = rows.get((task["id"], period))
            views.append(
                TaskView(
                    **task,
                    period=period,
                    progress=row.progress if row is not None else 0,
                    completed=row.completed if row is not None else False,
                    claimed=row.claimed if row is not None else False,
                )
            )
        return views

    async def record_progress(
        self,
        user_id: str,
        condition: str,
        amount: int = 1,
        *,
        db: AsyncSession | None = None,
    ) -> list[str]:
        """Add ``amount`` to every open task listening to ``condition``.

        Returns the ids of tasks this call completed.
        """
        if amount < 0:
            raise InvalidAmount("Task progress must be non-negative", amount=amount)
        if amount == 0:
            return []
        if db is None:
            async with self._ledger.unit_of_work(user_id) as own_db:
                return await self._record(own_db, user_id, condition, amount)
        return await self._record(db, user_id, condition, amount)

    async def _record(self, db: AsyncSession, user_id: str, condition: str, amount: int) -> list[str]:
        now = self._ledger.clock()
        completed = []
        for task in TASKS:
            if task["condition"] != condition:
                continue
            period = task_period(task, now)
            row = await _lock_progress(db, user_id, task["id"], period)
            if row is None:
                row = TaskProgress(
                    user_id=user_id,
                    task_id=task["id"],
                    period=period,
                    progress=0,
                    completed=False,
                    claimed=False,
                    updated_at=now,
                )
                db.add(row)
            if row.completed:
                continue

            row.progress = min(task["target"], row.progress + amount)
            row.completed = row.progress >= task["target"]
            row.updated_at = now
            if row.completed:
                completed.append(task["id"])
                logger.info("Task completed: user=%s task=%s period=%s", user_id, task["id"], period)
        await db.flush()
        return completed

    async def claim(self, user_id: str, task_id: str) -> TaskReward:
        """Pay a completed task's rewards once per period.

        Raises ``TaskNotFound``, ``AlreadyClaimed`` or ``NotYetComplete``.
        """
        task = TASKS_BY_ID.get(task_id)
        if task is None:
            raise TaskNotFound("Task not found", task_id=task_id)

        async with self._ledger.unit_of_work(user_id) as db:
            now = self._ledger.clock()
            period = task_period(task, now)
            row = await _lock_progress(db, user_id, task_id, period)
            if row is not None and row.claimed:
                raise AlreadyClaimed("Task reward already claimed", task_id=task_id, period=period)
            if row is None or not row.completed:
                raise NotYetComplete(
                    "Task not completed yet",
                    task_id=task_id,
                    progress=row.progress if row is not None else 0,
                    target=task["target"],
                )

            row.claimed = True
            row.claimed_at = now
            row.updated_at = now
            await db.flush()

            gems = shells = Decimal("0")
            energy = 0
            pets: list[Pet] = []
            for reward in task["rewards"]:
                kind = reward["type"]
                if kind in _REWARD_CURRENCY:
                    currency = _REWARD_CURRENCY[kind]
                    amount = Decimal(reward["amount"])
                    await self._ledger.mutate_balance(
                        user_id, currency, amount, TransactionType.EARN, TASK_SOURCE,
                        description=f"task {task['name']}",
                        idempotency_key=f"task:{user_id}:{task_id}:{period}:{kind}",
                        db=db,
                    )
                    if currency == Currency.GEM:
                        gems += amount
                    else:
                        shells += amount
                elif kind == REWARD_ENERGY:
                    before = (await self._ledger.lock_wallet(db, user_id)).energy
                    after = await self._ledger.mutate_energy(
                        user_id, reward["amount"], EnergySource.TASK_REWARD,
                        description=f"task {task['name']}",
                        db=db,
                    )
                    energy += after - before
                elif kind == REWARD_PET_EGG:
                    rarity = Rarity(reward.get("rarity", Rarity.COMMON))
                    for _ in range(reward["amount"]):
                        pet = Pet(
                            user_id=user_id,
                            name=pick_name(self._rng, rarity),
                            rarity=rarity,
                            level=1,
                            exp=0,
                            bond_tag="TASK",
                            created_at=now,
                        )
                        db.add(pet)
                        pets.append(pet)
            await db.flush()

        logger.info(
            "Task claimed: user=%s task=%s period=%s gems=%s shells=%s energy=%d pets=%d",
            user_id, task_id, period, gems, shells, energy, len(pets),
        )
        return TaskReward(
            task_id=task_id,
            period=period,
            gems=gems,
            shells=shells,
            energy=energy,
            pets=[PetView.model_validate(pet) for pet in pets],
        )

    async def reset_daily_tasks(self) -> int:
        """Delete daily progress from earlier UTC days. Returns rows removed."""
        today = task_period({"kind": DAILY}, self._ledger.clock())
        async with self._ledger.housekeeping_session() as db:
            result = await db.execute(
                delete(TaskProgress).where(
                    TaskProgress.task_id.in_(DAILY_TASK_IDS),
                    TaskProgress.period != today,
                )
            )
        removed = result.rowcount or 0
        logger.info("Daily tasks reset: %d stale rows removed", removed)
        return removed


async def _lock_progress(db: AsyncSession, user_id: str, task_id: str, period: str) -> TaskProgress | None:
    result = await db.execute(
        select(TaskProgress)
        .where(TaskProgress.user_id == user_id, TaskProgress.task_id == task_id, TaskProgress.period == period)
        .with_for_update()
    )
    return result.scalar_one_or_none()
