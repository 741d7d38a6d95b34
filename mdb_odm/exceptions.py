"""
Custom exceptions for MDB_ODM.

Every error raised by the query compiler, the middleware pipeline and the
executor derives from MdbOdmError, which keeps compatibility with
RuntimeError while carrying a context dictionary for diagnostics.
Errors raised by the driver itself (pymongo.errors.*) are not wrapped.
"""

from typing import Any, Dict, List, Optional


class MdbOdmError(RuntimeError):
    """
    Base exception for MDB_ODM errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (collection,
                 field name, operation type, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class ConfigurationError(MdbOdmError):
    """
    Raised when connection configuration is invalid or missing.

    Attributes:
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


# ============================================================================
# RESULT ERRORS
# ============================================================================


class QueryNotSliceError(MdbOdmError):
    """Raised when a result target is not a list to be filled in place."""

    def __init__(self, message: str = "result argument must be a list", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ResultTypeInconsistentError(MdbOdmError):
    """
    Raised when a value returned by the server cannot be turned into the
    caller's declared result type.

    Distinct from QueryNotSliceError: the target shape was fine, its
    contents were not.
    """

    def __init__(
        self,
        message: str = "result type is not equal mongodb value type",
        expected_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if expected_type:
            context["expected_type"] = expected_type
        super().__init__(message, context=context)
        self.expected_type = expected_type


class DocumentNotFoundError(MdbOdmError):
    """Raised when an operation matched no document."""

    def __init__(self, message: str = "no documents in result", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


# ============================================================================
# DOCUMENT ERRORS
# ============================================================================


class FieldDefaultingError(MdbOdmError):
    """
    Raised when a custom field mapping cannot be applied to a document.

    Attributes:
        field_name: Mapped attribute name that failed
        role: Role of the field ("id", "create_at" or "update_at")
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        role: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if field_name:
            context["field_name"] = field_name
        if role:
            context["role"] = role
        super().__init__(message, context=context)
        self.field_name = field_name
        self.role = role


class DocumentValidationError(MdbOdmError):
    """
    Raised by the validation callback when a document fails validation.

    Attributes:
        error_paths: Field paths reported by the validator
    """

    def __init__(
        self,
        message: str,
        error_paths: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if error_paths:
            context["error_paths"] = error_paths
        super().__init__(message, context=context)
        self.error_paths = error_paths or []


class ReplacementContainsOperatorsError(MdbOdmError):
    """Raised when a replacement document has keys beginning with '$'."""

    def __init__(
        self,
        message: str = "replacement document cannot contain keys beginning with '$'",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)


class UpdateRequiresOperatorsError(MdbOdmError):
    """Raised when an update document has keys not beginning with '$'."""

    def __init__(
        self,
        message: str = "update document must only contain keys beginning with '$'",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)


class InvalidInsertError(MdbOdmError):
    """Raised when insert_many is not given a non-empty list."""

    def __init__(self, message: str = "must be valid list to insert", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ModelNotRegisteredError(MdbOdmError):
    """Raised when a model name was never registered on the connection."""

    def __init__(self, model_name: str) -> None:
        super().__init__(
            f"Model '{model_name}' is not registered",
            context={"model_name": model_name},
        )
        self.model_name = model_name


# ============================================================================
# TRANSACTION ERRORS
# ============================================================================


class TransactionRetryError(MdbOdmError):
    """
    Raise from a transaction callback to have the whole callback re-run.

    The callback must be idempotent.
    """

    def __init__(self, message: str = "retry transaction", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class TransactionNotSupportedError(MdbOdmError):
    """Raised when the server version or topology cannot run transactions."""

    def __init__(self, message: str = "transaction not supported", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
