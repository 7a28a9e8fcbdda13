class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced record, section, student or subject is absent."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class ConflictError(DomainError):
    """Raised when a unique key is already taken."""


class DuplicateRecordError(ConflictError):
    """Raised when a generated attendance record id collides in the store."""


class AlreadyFinalizedError(DomainError):
    """Raised when a finalized attendance record is asked to change."""


class InconsistentStateError(DomainError):
    """Raised when present + absent does not add up to the session count."""


class SectionInactiveError(ValidationError):
    """Raised when attendance targets a deactivated class section."""


class TeacherNotAssignedError(AuthorizationError):
    """Raised when the acting teacher does not teach the class section."""


class NotEnrolledError(ValidationError):
    """Raised when a student is not enrolled in the section's subject."""


class NotInSectionError(ValidationError):
    """Raised when a student is not an active member of the section roster."""
