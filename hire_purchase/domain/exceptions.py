"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is malformed or violates a business rule; nothing was mutated"""

    pass


class AlreadyPaidError(ValidationError):
    """Installment was already marked paid and must not be counted twice"""

    pass


class NotFoundError(DomainException):
    """Referenced sale, installment or credit card does not exist"""

    pass


class InvariantViolation(DomainException):
    """Computed ledger state is corrupt (e.g. negative balance) and must not be persisted"""

    pass
