"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Commit rejected before any network call was issued"""

    pass


class CommitError(DomainException):
    """Batch create/update failed in transport or on the server"""

    pass


class StaleSessionError(DomainException):
    """Fetch response belongs to a (lead, day) the session has already left"""

    pass


class RosterAPIError(DomainException):
    """Roster, day-record or accounts lookup failed"""

    pass


class InvalidOperationError(DomainException):
    """Store operation would break a session invariant"""

    pass


class UnknownReferenceError(InvalidOperationError):
    """Loan id or ad-hoc temp id is not part of the session"""

    pass
