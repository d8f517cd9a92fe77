"""
Custom exceptions for the tensionchart application.
"""


class TensionChartError(Exception):
    """Base exception for all tensionchart errors."""
    pass


class ValidationError(TensionChartError):
    """Raised when validation fails for an item or operation."""
    pass


class NotFoundError(TensionChartError):
    """Raised when a requested item is not found."""
    pass


class InvalidOperationError(TensionChartError):
    """Raised when an operation is not allowed in the current state."""
    pass


class ConfigurationError(TensionChartError):
    """Raised when there's a configuration or setup issue."""
    pass


class PersistenceError(TensionChartError):
    """Raised by a persistence collaborator when a call was not accepted."""
    pass


class StorageError(PersistenceError):
    """Raised when reading or writing chart files fails."""
    pass
