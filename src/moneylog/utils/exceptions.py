"""Custom exception classes for MoneyLog."""


class MoneyLogError(Exception):
    """Base exception for MoneyLog."""
    pass


class ConfigError(MoneyLogError):
    """Configuration-related errors."""
    pass


class ValidationError(MoneyLogError):
    """Data validation errors."""
    pass


class NotFoundError(MoneyLogError):
    """Record does not exist or belongs to another user."""
    pass


class StorageError(MoneyLogError):
    """Database errors."""
    pass


class DeliveryError(MoneyLogError):
    """Email delivery errors."""
    pass
