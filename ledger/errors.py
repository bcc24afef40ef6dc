class LedgerError(Exception):
    """Base class for errors surfaced to the caller as an HTTP response."""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    status_code = 400


class InvalidRange(ValidationError):
    """Month or year outside the accepted bounds."""


class CategoryNotFound(LedgerError):
    status_code = 404


class NotFoundError(LedgerError):
    status_code = 404


class AccessDeniedError(LedgerError):
    status_code = 403


class ConflictError(LedgerError):
    status_code = 409


class DuplicateIncome(ConflictError):
    pass


class DuplicateBudget(ConflictError):
    pass


class UserExists(ConflictError):
    pass


class StoreError(LedgerError):
    """The database rejected a write; the session has been rolled back."""
    status_code = 500
