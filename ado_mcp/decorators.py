"""
Decorators for error mapping, retry, timeout and execution logging.

Every call into the Azure DevOps SDK goes through azure_devops_operation so
that a node in a bulk run fails with a typed, readable error instead of a
raw SDK exception, and never hangs its branch indefinitely.
"""

import asyncio
import logging
from functools import wraps
from typing import Callable, TypeVar, Optional, Tuple, Type

from .errors import (
    AzureDevOpsError,
    map_status_code_to_error,
    RateLimitError,
    TransientError,
    RequestTimeoutError
)
from .log_sanitizer import sanitize_log_message
from .validation import ValidationError

T = TypeVar('T')

logger = logging.getLogger(__name__)

# SDK error type keys that carry no HTTP status on the exception object
TYPE_KEY_STATUS_CODES = {
    'WorkItemUnauthorizedAccessException': 403,
    'WikiNotFoundException': 404,
    'WikiPageNotFoundException': 404,
    'ProjectDoesNotExistWithNameException': 404,
    'WorkItemLinkAddExtraParentException': 409,
    'WorkItemLinkInvalidCyclicalLinkException': 400,
    'RuleValidationException': 400,
}


def _extract_status_code(error: Exception) -> Optional[int]:
    """Find the HTTP status code of an SDK exception, if it has one."""
    status_code = getattr(error, 'status_code', None)

    if not status_code:
        response = getattr(error, 'response', None)
        if response is not None:
            status_code = getattr(response, 'status_code', None)

    if not status_code:
        type_key = getattr(error, 'type_key', None)
        if type_key:
            status_code = TYPE_KEY_STATUS_CODES.get(type_key)
            if not status_code and 'NotFound' in type_key:
                status_code = 404

    return status_code if isinstance(status_code, int) else None


def _extract_retry_after(error: Exception) -> Optional[int]:
    """Read the Retry-After header (seconds) from an SDK exception."""
    response = getattr(error, 'response', None)
    headers = getattr(response, 'headers', None) if response is not None else None
    if not headers:
        return None

    header = headers.get('Retry-After') or headers.get('retry-after')
    if not header:
        return None

    try:
        return int(header)
    except (ValueError, TypeError):
        # HTTP-date form
        logger.warning(f"Could not parse Retry-After header: {header}")
        return 60


def handle_ado_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator mapping SDK exceptions to AzureDevOpsError subclasses.

    ValidationError and AzureDevOpsError pass through untouched. Anything
    else is mapped by HTTP status code when one can be found, and wrapped
    in a plain AzureDevOpsError otherwise.

    Example:
        @handle_ado_error
        async def get_work_item(self, work_item_id: int):
            return self.wit_client.get_work_item(id=work_item_id)
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (AzureDevOpsError, ValidationError):
            raise
        except Exception as e:
            detail = sanitize_log_message(str(e))
            status_code = _extract_status_code(e)

            if status_code:
                error = map_status_code_to_error(
                    status_code,
                    original_error=e,
                    message=detail,
                    work_item_id=kwargs.get('work_item_id') or kwargs.get('child_id'),
                    operation=func.__name__,
                    retry_after=_extract_retry_after(e) if status_code == 429 else None
                )
                logger.error(f"Azure DevOps API error in {func.__name__}: {error}")
                raise error from e

            logger.error(f"Unexpected error in {func.__name__}: {detail}", exc_info=True)
            raise AzureDevOpsError(
                message=f"{func.__name__} failed: {detail}",
                original_error=e
            ) from e

    return wrapper


def retry_on_transient_error(
    max_retries: int = 3,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 60.0,
    retryable: Tuple[Type[AzureDevOpsError], ...] = (RateLimitError, TransientError)
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to retry on RateLimitError and TransientError with exponential backoff.

    A Retry-After value on a RateLimitError takes precedence over the
    computed delay. Other errors are raised immediately.

    Args:
        max_retries: Retry attempts after the first call
        base_delay: Delay before the first retry, in seconds
        exponential_base: Multiplier applied per attempt
        max_delay: Upper bound for any single delay
        retryable: Error classes that trigger another attempt
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable as e:
                    if attempt >= max_retries:
                        logger.error(f"Max retries ({max_retries}) exceeded for {func.__name__}")
                        raise

                    if isinstance(e, RateLimitError) and e.retry_after:
                        delay = min(e.retry_after, max_delay)
                    else:
                        delay = min(base_delay * (exponential_base ** attempt), max_delay)

                    logger.warning(
                        f"Transient error in {func.__name__} (attempt {attempt + 1}/{max_retries}): "
                        f"{e}. Retrying in {delay:.1f}s..."
                    )
                    await asyncio.sleep(delay)

        return wrapper
    return decorator


def with_timeout(timeout_seconds: float = 30) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator bounding an async operation by timeout_seconds.

    Raises:
        RequestTimeoutError: When the operation does not finish in time
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout_seconds)
            except asyncio.TimeoutError as e:
                logger.error(f"Timeout after {timeout_seconds}s in {func.__name__}")
                raise RequestTimeoutError(timeout_seconds=timeout_seconds, original_error=e)

        return wrapper
    return decorator


def log_execution(
    level: int = logging.INFO,
    log_args: bool = False
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator logging entry, completion and failure of an async call.

    Args:
        level: Logging level for the entry/completion lines
        log_args: Include (sanitized) arguments in the entry line
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            func_name = func.__name__

            if log_args:
                logger.log(level, sanitize_log_message(f"Calling {func_name} with args={args[1:]}, kwargs={kwargs}"))
            else:
                logger.log(level, f"Calling {func_name}")

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.log(level, f"{func_name} failed with error: {sanitize_log_message(str(e))}")
                raise

            logger.log(level, f"{func_name} completed successfully")
            return result

        return wrapper
    return decorator


def validate_work_item_id(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator rejecting non-positive or non-integer work item IDs.

    Looks at the work_item_id keyword, or the first positional argument
    after self.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        work_item_id = kwargs.get('work_item_id')
        if work_item_id is None and len(args) > 1:
            work_item_id = args[1]

        if isinstance(work_item_id, bool) or not isinstance(work_item_id, int) or work_item_id <= 0:
            raise ValidationError(
                f"Invalid work item ID: {work_item_id}. Must be a positive integer.",
                field='work_item_id'
            )

        return await func(*args, **kwargs)

    return wrapper


def azure_devops_operation(
    timeout_seconds: float = 30,
    max_retries: int = 3,
    base_delay: float = 1.0,
    retryable: Tuple[Type[AzureDevOpsError], ...] = (RateLimitError, TransientError)
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Combine error mapping, retry and timeout.

    Order, innermost first: handle_ado_error, retry_on_transient_error,
    with_timeout. The timeout therefore bounds the whole retry sequence.

    Example:
        @azure_devops_operation(timeout_seconds=60, max_retries=5)
        async def get_work_item(self, work_item_id: int):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        decorated = handle_ado_error(func)
        decorated = retry_on_transient_error(
            max_retries=max_retries,
            base_delay=base_delay,
            retryable=retryable
        )(decorated)
        decorated = with_timeout(timeout_seconds)(decorated)
        return decorated

    return decorator
