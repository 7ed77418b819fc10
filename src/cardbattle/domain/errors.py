"""Exception hierarchy for ledger operations.

Every rejected operation raises a subclass of :class:`LedgerError`.  The
``code`` attribute is stable and is what API clients see, so renaming a class
must not change its code.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all ledger failures."""

    code = "LedgerError"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


# --- Validation ------------------------------------------------------------------


class ValidationError(LedgerError):
    """The request is malformed or conflicts with current state."""

    code = "ValidationError"


class InvalidName(ValidationError):
    code = "InvalidName"


class InvalidAddress(ValidationError):
    code = "InvalidAddress"


class InvalidOutcome(ValidationError):
    code = "InvalidOutcome"


class InvalidTokenId(ValidationError):
    code = "InvalidTokenId"


class AlreadyRegistered(ValidationError):
    code = "AlreadyRegistered"


class NotRegistered(ValidationError):
    code = "NotRegistered"


class AlreadyResolved(ValidationError):
    code = "AlreadyResolved"


class SecondPlayerAlreadySet(ValidationError):
    code = "SecondPlayerAlreadySet"


class InvalidPlayer2(ValidationError):
    code = "InvalidPlayer2"


class InvalidWinner(ValidationError):
    code = "InvalidWinner"


class LedgerNotDeployed(ValidationError):
    code = "LedgerNotDeployed"


# --- Authorization ---------------------------------------------------------------


class AuthorizationError(LedgerError):
    """The caller or the submitted proof is not allowed to perform the call."""

    code = "AuthorizationError"


class OwnershipMismatch(AuthorizationError):
    code = "OwnershipMismatch"


class InvalidAuthorization(AuthorizationError):
    code = "InvalidAuthorization"


class NotOwner(AuthorizationError):
    code = "NotOwner"


# --- Lookup ----------------------------------------------------------------------


class LookupFailure(LedgerError):
    """A referenced entity or enumeration value does not exist."""

    code = "LookupFailure"


class BattleNotFound(LookupFailure):
    code = "BattleNotFound"


class TokenNotFound(LookupFailure):
    code = "TokenNotFound"


class UnknownCharacterClass(LookupFailure):
    code = "UnknownCharacterClass"
