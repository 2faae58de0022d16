"""Domain-specific exceptions

Every exception carries a stable ``code`` that the API layer returns to
callers verbatim.
"""


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "DomainError"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


# Validation errors: caller mistakes, never retried


class ValidationError(DomainException):
    code = "ValidationError"


class InvalidAmount(ValidationError):
    code = "InvalidAmount"


class InvalidInstallmentCount(ValidationError):
    code = "InvalidInstallmentCount"


class InstallmentMismatch(ValidationError):
    code = "InstallmentMismatch"


class InterestNotApplicable(ValidationError):
    code = "InterestNotApplicable"


class PlanAmountLocked(ValidationError):
    """Installment amounts of a split or manual plan are fixed by its declared total"""

    code = "PlanAmountLocked"


class SameAccountTransfer(ValidationError):
    code = "SameAccountTransfer"


# State errors: caller holds a stale view


class StateError(DomainException):
    code = "StateError"


class AlreadyPaid(StateError):
    code = "AlreadyPaid"


class AlreadyCancelled(StateError):
    code = "AlreadyCancelled"


class NotPaid(StateError):
    code = "NotPaid"


class NotReversible(StateError):
    code = "NotReversible"


class AlreadyReversed(StateError):
    code = "AlreadyReversed"


class OpeningBalanceExists(StateError):
    code = "OpeningBalanceExists"


# Not-found errors (also raised for entities owned by someone else)


class NotFoundError(DomainException):
    code = "NotFound"


class BillNotFound(NotFoundError):
    code = "BillNotFound"


class AccountNotFound(NotFoundError):
    code = "AccountNotFound"


class BankAccountNotFound(AccountNotFound):
    """Settling account of a payment is missing, inactive or foreign"""

    code = "BankAccountNotFound"


class VendorNotFound(NotFoundError):
    code = "VendorNotFound"


class CardNotFound(NotFoundError):
    code = "CardNotFound"


class EntryNotFound(NotFoundError):
    code = "EntryNotFound"


class TransferNotFound(NotFoundError):
    code = "TransferNotFound"


class TransientFailure(DomainException):
    """Storage transaction kept conflicting after bounded retries"""

    code = "TransientFailure"
