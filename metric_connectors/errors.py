"""
Categorized exceptions raised inside connectors.

Connectors and engine validation raise these; only the outermost invocation
boundary converts them into an ErrorResponse. The category decides whether the
console may retry: Validation failures are the caller's fault, anything else
is reported as InternalError.
"""

from metric_connectors.models.enums import ErrorCategory


class ConnectorError(Exception):
    """Base error carrying the category reported to the caller."""

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(self, message: str, category: ErrorCategory | None = None):
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category


class ValidationError(ConnectorError):
    """Raised when the caller supplied malformed or out-of-range arguments."""

    category = ErrorCategory.VALIDATION


class BackendError(ConnectorError):
    """Raised when the metric backend cannot be reached or answers with an error."""

    category = ErrorCategory.INTERNAL
