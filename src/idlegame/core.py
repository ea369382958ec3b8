"""Composition root: wires the economy components around one ledger."""

from __future__ import annotations

import logging
import random

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from idlegame.achievements.service import AchievementService
from idlegame.config import Settings
from idlegame.database import build_engine, build_session_factory
from idlegame.dependencies import Clock, default_rng, utc_now
from idlegame.energy.service import EnergyModel
from idlegame.fusion.service import FusionEngine
from idlegame.ledger import Ledger, UserLockRegistry
from idlegame.leveling.service import LevelingService
from idlegame.mine.service import MineChallengeEngine
from idlegame.pets.service import PetService
from idlegame.production.service import ProductionAccrual
from idlegame.tasks.service import TaskService

logger = logging.getLogger(__name__)


class EconomyCore:
    """All economy entry points sharing one session factory, clock, RNG and lock registry."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Clock = utc_now,
        rng: random.Random | None = None,
        session_horizon_hours: int = 24,
        engine: AsyncEngine | None = None,
    ) -> None:
        self.engine = engine
        self.rng = rng or default_rng()
        self.ledger = Ledger(session_factory, clock=clock, locks=UserLockRegistry())
        self.energy = EnergyModel(self.ledger)
        self.leveling = LevelingService(self.ledger)
        self.tasks = TaskService(self.ledger, self.rng)
        self.production = ProductionAccrual(
            self.ledger,
            self.energy,
            self.leveling,
            session_horizon_hours=session_horizon_hours,
            tasks=self.tasks,
        )
        self.pets = PetService(self.ledger, self.rng)
        self.fusion = FusionEngine(self.ledger, self.rng, self.tasks)
        self.mine = MineChallengeEngine(self.ledger, self.rng, self.tasks)
        self.achievements = AchievementService(self.ledger)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> EconomyCore:
        engine = build_engine(settings)
        logger.info("Economy core starting (environment=%s)", settings.environment)
        return cls(
            build_session_factory(engine),
            session_horizon_hours=settings.session_horizon_hours,
            engine=engine,
            **kwargs,
        )

    async def dispose(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Economy core disposed")
