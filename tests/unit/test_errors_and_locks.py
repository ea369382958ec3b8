"""Unit tests for the error taxonomy and the per-user lock registry."""

import asyncio
import gc

import pytest

from idlegame.errors import (
    AlreadyClaimed,
    EconomyError,
    InsufficientCurrency,
    InsufficientFunds,
    InsufficientResource,
    InvalidMaterials,
    InvalidState,
    NotFound,
    NotOwner,
    PetNotFound,
    ValidationError,
)
from idlegame.ledger import UserLockRegistry


class TestErrorTaxonomy:
    """Families and payloads."""

    def test_families(self):
        assert issubclass(InvalidMaterials, ValidationError)
        assert issubclass(InvalidMaterials, ValueError)
        assert issubclass(InsufficientFunds, InsufficientResource)
        assert issubclass(AlreadyClaimed, InvalidState)
        assert issubclass(PetNotFound, NotFound)
        assert issubclass(PetNotFound, LookupError)
        assert issubclass(NotOwner, PermissionError)

    def test_currency_alias(self):
        assert InsufficientCurrency is InsufficientFunds

    def test_to_dict(self):
        err = AlreadyClaimed("Challenge already claimed", challenge_id=3, state="CLAIMED")
        assert err.to_dict() == {
            "code": "already_claimed",
            "message": "Challenge already claimed",
            "details": {"challenge_id": 3, "state": "CLAIMED"},
        }

    def test_catchable_as_base(self):
        with pytest.raises(EconomyError):
            raise InsufficientFunds("no", currency="SHELL")


class TestUserLockRegistry:
    """Per-user serialisation."""

    def test_same_user_same_lock(self):
        registry = UserLockRegistry()
        assert registry.lock_for("a") is registry.lock_for("a")

    def test_different_users_different_locks(self):
        registry = UserLockRegistry()
        lock_a = registry.lock_for("a")
        lock_b = registry.lock_for("b")
        assert lock_a is not lock_b

    @pytest.mark.asyncio
    async def test_same_user_serialises(self):
        registry = UserLockRegistry()
        order: list[str] = []

        async def work(tag: str) -> None:
            async with registry.hold("a"):
                order.append(f"{tag}-in")
                await asyncio.sleep(0.01)
                order.append(f"{tag}-out")

        await asyncio.gather(work("x"), work("y"))
        assert order in (["x-in", "x-out", "y-in", "y-out"], ["y-in", "y-out", "x-in", "x-out"])

    @pytest.mark.asyncio
    async def test_different_users_do_not_block(self):
        registry = UserLockRegistry()
        async with registry.hold("a"):
            await asyncio.wait_for(_enter(registry, "b"), timeout=1)

    @pytest.mark.asyncio
    async def test_idle_locks_are_released(self):
        registry = UserLockRegistry()
        async with registry.hold("a"):
            assert len(registry) == 1
        gc.collect()
        assert len(registry) == 0


async def _enter(registry: UserLockRegistry, user_id: str) -> None:
    async with registry.hold(user_id):
        pass
