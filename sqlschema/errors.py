"""Error types for sqlschema."""

from typing import Optional, Dict, Any


class SchemaError(Exception):
    """Base exception for schema engine errors."""

    def __init__(self, message: str, code: str = "SCHEMA_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for structured output."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidSpecificationError(SchemaError):
    """Contradictory or unknown settings in a column or routine request."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_SPECIFICATION", details=details)


class TransactionStateError(SchemaError):
    """Commit or rollback attempted on an inactive transaction or connection."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="TRANSACTION_STATE", details=details)


class UnsupportedDialectError(SchemaError):
    """No dialect is registered under the requested name."""

    def __init__(self, dialect: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Unsupported dialect: {dialect}",
            code="UNSUPPORTED_DIALECT",
            details=details or {"dialect": dialect},
        )
        self.dialect = dialect


class UnsupportedOperationError(SchemaError):
    """The dialect cannot express the requested schema operation at all."""

    def __init__(self, dialect: str, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"{operation} is not supported by {dialect}",
            code="UNSUPPORTED_OPERATION",
            details=details or {"dialect": dialect, "operation": operation},
        )
        self.dialect = dialect
        self.operation = operation


class DiscoveryError(SchemaError):
    """A catalog query failed at the driver level."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="DISCOVERY_ERROR", details=details)
