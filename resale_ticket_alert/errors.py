"""
Exceptions and failure classification for the Resale Ticket Alert.
"""
from typing import Optional, Sequence, Tuple


class TicketAlertError(Exception):
    """Base class for errors raised by this package."""


class SessionLifecycleError(TicketAlertError):
    """The browser session could not be started or stopped."""


class NotificationDeliveryError(TicketAlertError):
    """A notification could not be delivered."""


class LogWriteError(TicketAlertError):
    """A run log record could not be written."""


# Checked in order, first match wins. Timeouts must come before the
# generic error names since their messages contain "Error" too.
ERROR_MARKERS: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("TimeoutError",), "Browser timeout"),
    (("Connection terminated", "pipe_handler"), "Connection error"),
    (("Navigation failed",), "Navigation failed"),
    (("process did exit",), "Browser crashed"),
    (("net::ERR", "network error"), "Network error"),
    (("captcha", "CAPTCHA"), "CAPTCHA detected"),
    (("page.goto", "Page.goto"), "Page navigation error"),
)

GENERIC_ERROR_TYPES: Sequence[str] = ("Error", "Exception", "TypeError", "SyntaxError", "ReferenceError")

FALLBACK_LABEL = "Script error"


def classify_error(message: Optional[str]) -> str:
    """Reduce a raw diagnostic to a short, stable category label.

    Args:
        message: Error text, possibly multi-line (e.g. a formatted traceback).

    Returns:
        The category label, or an empty string when there is no message.
    """
    if not message:
        return ""

    for markers, label in ERROR_MARKERS:
        if any(marker in message for marker in markers):
            return label

    for error_type in GENERIC_ERROR_TYPES:
        if error_type in message:
            return error_type

    return FALLBACK_LABEL


def describe_exception(exc: BaseException) -> str:
    """Render an exception as ``"<Type>: <message>"`` for classification."""
    text = str(exc)
    name = type(exc).__name__
    return f"{name}: {text}" if text else name
