class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class DuplicateCustomerError(ValidationError):
    pass


class NotFoundError(AppError):
    pass


class StorageError(AppError):
    """Schema migration could not be applied."""
