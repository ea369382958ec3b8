"""ORM models for the economy tables.

``user_id`` is the opaque identifier handed over by the (external) auth layer;
there is no users table in this schema.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from idlegame.db.base import Base, BigIntPK, UTCDateTime

MONEY = Numeric(20, 2)


class Rarity(str, enum.Enum):
    COMMON = "COMMON"
    RARE = "RARE"
    EPIC = "EPIC"
    LEGENDARY = "LEGENDARY"
    MYTHIC = "MYTHIC"


class Currency(str, enum.Enum):
    GEM = "GEM"
    SHELL = "SHELL"
    TICKET = "TICKET"


class TransactionType(str, enum.Enum):
    EARN = "EARN"
    SPEND = "SPEND"


class EnergySource(str, enum.Enum):
    NATURAL_RECOVERY = "NATURAL_RECOVERY"
    PURCHASE = "PURCHASE"
    PRODUCTION = "PRODUCTION"
    MINE_CHALLENGE = "MINE_CHALLENGE"
    TASK_REWARD = "TASK_REWARD"
    ADMIN = "ADMIN"


def _enum(cls: type[enum.Enum]) -> Enum:
    return Enum(cls, native_enum=False, length=24, validate_strings=True)


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


class Wallet(Base):
    """Per-user balances. Mutated only through the ledger."""

    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("gem_balance >= 0", name="ck_wallets_gem_non_negative"),
        CheckConstraint("shell_balance >= 0", name="ck_wallets_shell_non_negative"),
        CheckConstraint("mine_ticket >= 0", name="ck_wallets_ticket_non_negative"),
        CheckConstraint("energy >= 0 AND energy <= 100", name="ck_wallets_energy_range"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    gem_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    shell_balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    mine_ticket: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    energy: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    last_energy_update: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    newbie_granted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Pets (creatures)
# ---------------------------------------------------------------------------


class Pet(Base):
    """Collectible creature. Destroyed when consumed as fusion material."""

    __tablename__ = "pets"
    __table_args__ = (
        CheckConstraint("level >= 1 AND level <= 30", name="ck_pets_level_range"),
        CheckConstraint("exp >= 0", name="ck_pets_exp_non_negative"),
        Index("ix_pets_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(32), nullable=False)
    rarity: Mapped[Rarity] = mapped_column(_enum(Rarity), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    exp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    bond_tag: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------


class Transaction(Base):
    """Append-only currency audit row, one per wallet balance change."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transactions_amount_non_negative"),
        Index("ix_transactions_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[TransactionType] = mapped_column(_enum(TransactionType), nullable=False)
    currency: Mapped[Currency] = mapped_column(_enum(Currency), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class EnergyLedgerEntry(Base):
    """Append-only energy audit row.

    ``amount`` is the requested signed delta, ``applied`` the delta that
    survived clamping into [0, MAX_ENERGY].
    """

    __tablename__ = "energy_ledger"
    __table_args__ = (Index("ix_energy_ledger_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    applied: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[EnergySource] = mapped_column(_enum(EnergySource), nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Production
# ---------------------------------------------------------------------------


class ProductionSession(Base):
    """Idle production window. Open while ``closed_at`` is NULL."""

    __tablename__ = "production_sessions"
    __table_args__ = (
        Index(
            "uq_production_sessions_open",
            "user_id",
            unique=True,
            postgresql_where=text("closed_at IS NULL"),
            sqlite_where=text("closed_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    pet_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("pets.id", ondelete="SET NULL"), nullable=True
    )
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    energy_cost_per_hour: Mapped[int] = mapped_column(Integer, nullable=False)
    gem_produced: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    shell_produced: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    energy_consumed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exp_granted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ---------------------------------------------------------------------------
# Fusion
# ---------------------------------------------------------------------------


class FusionAttempt(Base):
    """Immutable record of one fusion roll."""

    __tablename__ = "fusion_attempts"
    __table_args__ = (Index("ix_fusion_attempts_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    target_rarity: Mapped[Rarity] = mapped_column(_enum(Rarity), nullable=False)
    shell_cost: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    use_protection: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    success_rate: Mapped[float] = mapped_column(Float, nullable=False)
    roll: Mapped[float] = mapped_column(Float, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    # No FK: the resulting pet may itself be consumed later, the record must not change.
    result_pet_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    materials: Mapped[list[FusionMaterial]] = relationship(
        "FusionMaterial", back_populates="attempt", lazy="selectin", order_by="FusionMaterial.id"
    )


class FusionMaterial(Base):
    """Snapshot of one creature consumed by a fusion attempt."""

    __tablename__ = "fusion_materials"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    fusion_attempt_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("fusion_attempts.id", ondelete="CASCADE"), nullable=False
    )
    pet_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    pet_rarity: Mapped[Rarity] = mapped_column(_enum(Rarity), nullable=False)
    pet_level: Mapped[int] = mapped_column(Integer, nullable=False)
    pet_exp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    attempt: Mapped[FusionAttempt] = relationship("FusionAttempt", back_populates="materials")


# ---------------------------------------------------------------------------
# Mine challenges
# ---------------------------------------------------------------------------


class MineChallenge(Base):
    """Timed mine expedition. Rewards are rolled once, at claim, and frozen here."""

    __tablename__ = "mine_challenges"
    __table_args__ = (
        Index(
            "uq_mine_challenges_unclaimed",
            "user_id",
            unique=True,
            postgresql_where=text("NOT claimed"),
            sqlite_where=text("NOT claimed"),
        ),
        Index("ix_mine_challenges_due", "claimed", "end_time"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    spot_level: Mapped[int] = mapped_column(Integer, nullable=False)
    ticket_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    energy_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    settled_by: Mapped[str | None] = mapped_column(String(16), nullable=True)
    roll: Mapped[float | None] = mapped_column(Float, nullable=True)
    gem_reward: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    shell_reward: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class AchievementClaim(Base):
    """Persisted claim so each achievement pays out once per user."""

    __tablename__ = "achievement_claims"
    __table_args__ = (UniqueConstraint("user_id", "achievement_id", name="uq_achievement_claims_user_achievement"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    achievement_id: Mapped[str] = mapped_column(String(32), nullable=False)
    gem_reward: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    shell_reward: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskProgress(Base):
    """Per-user progress on one catalogue task within one period.

    ``period`` is the UTC date for daily tasks and ``ONCE`` for tasks that
    never reset, so a new day starts from a fresh row.
    """

    __tablename__ = "task_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "task_id", "period", name="uq_task_progress_user_task_period"),
        Index("ix_task_progress_task_period", "task_id", "period"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    task_id: Mapped[str] = mapped_column(String(32), nullable=False)
    period: Mapped[str] = mapped_column(String(10), nullable=False)
    progress: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
