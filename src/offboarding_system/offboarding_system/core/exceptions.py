class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid; nothing has been written yet."""


class AuthorizationError(DomainError):
    """Raised when an actor's role, ownership or scope does not allow an action."""


class NotFoundError(DomainError):
    """Raised when a resignation or employee does not exist."""


class AlreadyAppliedError(DomainError):
    """Raised when the employee already has an active resignation."""


class NotAwaitingThisLevelError(DomainError):
    """Raised when a resignation is not waiting on the requested approval level."""


class AlreadyActedError(DomainError):
    """Raised when the requested approval stage has already been decided."""


class ApprovalInProgressError(DomainError):
    """Raised on withdrawal once any approval stage has acted."""


class ResignationClosedError(DomainError):
    """Raised when a closed resignation (e.g. withdrawn) is asked to change again."""


class NotDueForCompletionError(DomainError):
    """Raised when finalizing a resignation that is not approved or not yet due."""


class BatchIneligibleError(DomainError):
    """Raised when any id of a bulk update is not eligible; the batch is not applied."""

    def __init__(self, ineligible_count: int, message: str):
        super().__init__(message)
        self.ineligible_count = int(ineligible_count)


class TransientStorageError(Exception):
    """Raised when the store aborts a transaction (deadlock, lock wait timeout).

    The whole operation is safe to retry: preconditions are re-checked inside
    the next transaction.
    """
