"""Economy error taxonomy.

Four families, each mapped by the transport layer to one response class:

- ``ValidationError``      malformed input the player can correct
- ``InsufficientResource`` not enough currency, energy or tickets
- ``InvalidState``         already active / already claimed / not yet complete
- ``NotFound`` / ``NotOwner``

Nothing here is retried internally. Every error carries a stable ``code`` and a
``details`` dict (for ``InvalidState`` this includes the current state so the
caller can reconcile).
"""

from __future__ import annotations

from typing import Any


class EconomyError(Exception):
    """Base class for every error raised by the economy core."""

    code = "economy_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


# --- Validation ---


class ValidationError(EconomyError, ValueError):
    code = "validation_error"


class InvalidAmount(ValidationError):
    code = "invalid_amount"


class InvalidMaterials(ValidationError):
    code = "invalid_materials"


class InvalidRarity(ValidationError):
    code = "invalid_rarity"


class InvalidSpotLevel(ValidationError):
    code = "invalid_spot_level"


# --- Insufficient resources ---


class InsufficientResource(EconomyError):
    code = "insufficient_resource"


class InsufficientFunds(InsufficientResource):
    code = "insufficient_funds"


InsufficientCurrency = InsufficientFunds


class InsufficientEnergy(InsufficientResource):
    code = "insufficient_energy"


class TicketOrEnergyInsufficient(InsufficientResource):
    code = "ticket_or_energy_insufficient"


class NoCreatures(InsufficientResource):
    code = "no_creatures"


# --- State ---


class InvalidState(EconomyError):
    code = "invalid_state"


class NoActiveSession(InvalidState):
    code = "no_active_session"


class ChallengeInProgress(InvalidState):
    code = "challenge_in_progress"


class AlreadyClaimed(InvalidState):
    code = "already_claimed"


class NotYetComplete(InvalidState):
    code = "not_yet_complete"


class AchievementLocked(InvalidState):
    code = "achievement_locked"


class NewbieAlreadyGranted(InvalidState):
    code = "newbie_already_granted"


class PurchaseLimitReached(InvalidState):
    code = "purchase_limit_reached"


# --- Lookup / ownership ---


class NotFound(EconomyError, LookupError):
    code = "not_found"


class PetNotFound(NotFound):
    code = "pet_not_found"


class ChallengeNotFound(NotFound):
    code = "challenge_not_found"


class AchievementNotFound(NotFound):
    code = "achievement_not_found"


class TaskNotFound(NotFound):
    code = "task_not_found"


class NotOwner(EconomyError, PermissionError):
    code = "not_owner"
