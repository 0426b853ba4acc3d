"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Required input is missing, malformed or out of range"""

    pass


class NotFoundError(DomainException):
    """Referenced client, loan or account does not exist"""

    pass


class StoreError(DomainException):
    """Hierarchy store failed (connectivity, permission or contention)"""

    pass


class AuthenticationError(DomainException):
    """Credentials or session token were rejected"""

    pass
