"""Custom exceptions for Squeeze."""


class SqueezeError(Exception):
    """Base exception for all Squeeze errors."""


class DatabaseError(SqueezeError):
    """Database connection or query error."""


class ConfigError(SqueezeError):
    """Configuration error."""


class ValidationError(SqueezeError):
    """Data validation error."""


class NotFoundError(SqueezeError):
    """Entity not found."""


class CsvImportError(SqueezeError):
    """CSV file could not be read at all (individual bad rows are not errors)."""
