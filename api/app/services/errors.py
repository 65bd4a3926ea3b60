class LifecycleError(Exception):
    """Base error for job and application lifecycle operations."""


class NotFoundError(LifecycleError):
    """Raised when the referenced job or application does not exist."""


class ForbiddenError(LifecycleError):
    """Raised when the role or ownership check for an action fails."""


class ConflictError(LifecycleError):
    """Raised when an applicant already applied to the job."""


class InvalidStateError(LifecycleError):
    """Raised when a status value is not a legal transition target."""
