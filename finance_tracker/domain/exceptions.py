"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Missing or malformed input; no state was changed"""

    pass


class NotFoundError(DomainException):
    """Record does not exist or belongs to another owner"""

    pass


class PersistenceError(DomainException):
    """Underlying store failed; the operation was rolled back"""

    pass


class RatesAPIError(DomainException):
    """Currency rates API returned an error or is unavailable"""

    pass
