"""Atomic balance mutation and the append-only audit trail."""

from idlegame.ledger.locks import UserLockRegistry
from idlegame.ledger.service import MAX_ENERGY, Ledger

__all__ = ["MAX_ENERGY", "Ledger", "UserLockRegistry"]
