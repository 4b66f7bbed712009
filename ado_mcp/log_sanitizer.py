"""
Redaction of credentials from log lines and error text.

Error messages raised by the SDK can echo request headers or connection
strings. Anything that ends up in a log record or in a tool response goes
through these helpers first.
"""

import re


REDACTED = '***REDACTED***'

_SECRET_KEYS = ('password', 'client_secret', 'api_key', 'token', 'pat', 'authorization')

# Scheme values first, so "Authorization: Basic <value>" loses the value too
SENSITIVE_PATTERNS = [
    (re.compile(r'((?:bearer|basic)\s+)([a-zA-Z0-9\-._~+/]+=*)', re.IGNORECASE), rf'\1{REDACTED}'),
    # user:secret@host in URLs
    (re.compile(r'(https?://[^:/\s]*:)([^@\s]+)(@)', re.IGNORECASE), rf'\1{REDACTED}\3'),
] + [
    # A key may follow "_" (AZURE_DEVOPS_PAT) but not a letter (compat)
    (re.compile(rf'(?<![a-z])({key}["\']?\s*[:=]\s*["\']?)([^"\'\s,;]+)', re.IGNORECASE), rf'\1{REDACTED}')
    for key in _SECRET_KEYS
]


def sanitize_log_message(message: str) -> str:
    """Return message with every known secret pattern redacted."""
    if not message:
        return message

    for pattern, replacement in SENSITIVE_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


def describe_error(error: BaseException) -> str:
    """
    Short, sanitized description of an exception for a tool response.

    Falls back to the exception class name when the exception has no
    message, so a result never carries an empty error string.
    """
    text = str(error).strip()
    if not text:
        text = type(error).__name__
    return sanitize_log_message(text)


def safe_log_error(error: BaseException, context: str = "") -> str:
    """
    Build a sanitized 'context: ErrorType: message' line for logging.

    Args:
        error: The exception
        context: What was being attempted (e.g. "Service Principal authentication")
    """
    line = f"{type(error).__name__}: {sanitize_log_message(str(error))}"
    if context:
        return f"{context}: {line}"
    return line
