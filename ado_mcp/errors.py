"""
Exception hierarchy for Azure DevOps remote failures.

Every failure coming back from the Azure DevOps API is surfaced as an
AzureDevOpsError subclass so callers can branch on the status code or the
class without inspecting SDK internals.
"""

from typing import Optional, Any


class AzureDevOpsError(Exception):
    """
    Base exception for remote Azure DevOps failures.

    Attributes:
        status_code: HTTP status code, if one was available
        message: Human-readable error message
        original_error: The SDK exception that triggered this error
        details: Extra structured context
    """

    def __init__(
        self,
        message: str = "Azure DevOps API error",
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
        details: Optional[Any] = None
    ):
        self.message = message
        self.status_code = status_code
        self.original_error = original_error
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message

    def to_dict(self) -> dict:
        """Convert error to a JSON-serializable dictionary."""
        return {
            'error': self.__class__.__name__,
            'status_code': self.status_code,
            'message': self.message,
            'details': str(self.details) if self.details else None
        }


class WorkItemNotFoundError(AzureDevOpsError):
    """Raised when a work item (or the resource it points at) does not exist (HTTP 404)."""

    def __init__(
        self,
        work_item_id: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        if work_item_id:
            message = f"Work item {work_item_id} not found or not accessible."
        else:
            message = "Resource not found or not accessible."

        super().__init__(
            message=message,
            status_code=404,
            original_error=original_error,
            details={'work_item_id': work_item_id} if work_item_id else None
        )
        self.work_item_id = work_item_id


class BadRequestError(AzureDevOpsError):
    """
    Raised for malformed requests (HTTP 400).

    Typical causes in hierarchy creation: an unknown work item type, a
    field the process template does not define, or an invalid link type.
    """

    def __init__(
        self,
        message: str = "Bad request. Check work item type, field names and values.",
        original_error: Optional[Exception] = None,
        details: Optional[Any] = None
    ):
        super().__init__(
            message=message,
            status_code=400,
            original_error=original_error,
            details=details
        )


class AuthenticationError(AzureDevOpsError):
    """Raised when credentials are rejected (HTTP 401)."""

    def __init__(
        self,
        message: str = "Authentication failed. The token may be expired or invalid.",
        original_error: Optional[Exception] = None
    ):
        super().__init__(message=message, status_code=401, original_error=original_error)


class PermissionDeniedError(AzureDevOpsError):
    """Raised when the identity lacks permission for an operation (HTTP 403)."""

    def __init__(
        self,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        if operation:
            message = f"Permission denied for {operation}."
        else:
            message = "Permission denied. Check project permissions and token scopes."

        super().__init__(
            message=message,
            status_code=403,
            original_error=original_error,
            details={'operation': operation} if operation else None
        )


class RequestTimeoutError(AzureDevOpsError):
    """Raised when a single API call does not complete within its time budget."""

    def __init__(
        self,
        timeout_seconds: float = 30,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=f"Request timed out after {timeout_seconds} seconds.",
            status_code=408,
            original_error=original_error,
            details={'timeout_seconds': timeout_seconds}
        )
        self.timeout_seconds = timeout_seconds


class ConflictError(AzureDevOpsError):
    """
    Raised on HTTP 409.

    For linking this usually means the relation already exists or the
    child already has a different parent.
    """

    def __init__(
        self,
        message: str = "Conflict. The work item was changed or the link already exists.",
        original_error: Optional[Exception] = None
    ):
        super().__init__(message=message, status_code=409, original_error=original_error)


class RateLimitError(AzureDevOpsError):
    """Raised when Azure DevOps throttles the caller (HTTP 429)."""

    def __init__(
        self,
        retry_after: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        if retry_after:
            message = f"Rate limit exceeded. Retry after {retry_after} seconds."
        else:
            message = "Rate limit exceeded."

        super().__init__(
            message=message,
            status_code=429,
            original_error=original_error,
            details={'retry_after': retry_after}
        )
        self.retry_after = retry_after


class TransientError(AzureDevOpsError):
    """Raised for retryable server-side failures (HTTP 500, 502, 503, 504)."""

    def __init__(
        self,
        status_code: int = 503,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message=f"Azure DevOps temporarily unavailable (HTTP {status_code}).",
            status_code=status_code,
            original_error=original_error
        )


class PaginationLimitError(AzureDevOpsError):
    """
    Raised when a paged listing keeps returning continuation tokens past
    the configured request cap.
    """

    def __init__(
        self,
        max_requests: int,
        items_collected: int = 0
    ):
        super().__init__(
            message=(
                f"Pagination did not finish after {max_requests} requests "
                f"({items_collected} items collected)."
            ),
            details={'max_requests': max_requests, 'items_collected': items_collected}
        )
        self.max_requests = max_requests
        self.items_collected = items_collected


TRANSIENT_STATUS_CODES = (500, 502, 503, 504)


def map_status_code_to_error(
    status_code: int,
    original_error: Optional[Exception] = None,
    **kwargs
) -> AzureDevOpsError:
    """
    Map an HTTP status code to the matching error class.

    Args:
        status_code: HTTP status code reported by the SDK
        original_error: The SDK exception
        **kwargs: Class-specific arguments (work_item_id, retry_after, ...)

    Returns:
        An AzureDevOpsError subclass instance
    """
    if status_code == 400:
        if kwargs.get('message'):
            return BadRequestError(message=kwargs['message'], original_error=original_error)
        return BadRequestError(original_error=original_error)
    if status_code == 401:
        return AuthenticationError(original_error=original_error)
    if status_code == 403:
        return PermissionDeniedError(operation=kwargs.get('operation'), original_error=original_error)
    if status_code == 404:
        return WorkItemNotFoundError(work_item_id=kwargs.get('work_item_id'), original_error=original_error)
    if status_code == 408:
        return RequestTimeoutError(original_error=original_error)
    if status_code == 409:
        return ConflictError(original_error=original_error)
    if status_code == 429:
        return RateLimitError(retry_after=kwargs.get('retry_after'), original_error=original_error)
    if status_code in TRANSIENT_STATUS_CODES:
        return TransientError(status_code=status_code, original_error=original_error)

    return AzureDevOpsError(
        message=f"Azure DevOps API error: HTTP {status_code}",
        status_code=status_code,
        original_error=original_error
    )
