"""Custom exceptions for the Group Discount API."""


class GroupDiscountError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, errors=None, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = list(errors) if errors else []
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['success'] = False
        rv['message'] = self.message
        if self.errors:
            rv['errors'] = self.errors
        return rv


class ValidationError(GroupDiscountError):
    """Raised when a request payload is rejected."""
    def __init__(self, message, errors=None, payload=None):
        super().__init__(message, 400, errors, payload)


class ConfigurationValidationError(ValidationError):
    """Raised by the store when a configuration breaks its invariants."""
    def __init__(self, errors):
        super().__init__('Validation error', errors=errors)


class NotFoundError(GroupDiscountError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload=payload)


class PlatformSyncError(GroupDiscountError):
    """Raised when publishing to the commerce platform fails."""
    def __init__(self, message, status_code=500, errors=None):
        super().__init__(message, status_code, errors)
