"""Log line builders for request observability."""

from lokiship.core.models import Level


def level_for_status(status_code: int) -> Level:
    """Determine log level based on HTTP status code.

    Maps status codes to log levels:
    - 400-499 (4xx) → WARN
    - 500-599 (5xx) → ERROR
    - Other → INFO

    Args:
        status_code: HTTP status code from response.

    Returns:
        Level for the "completed" event.
    """
    if 400 <= status_code < 500:
        return Level.WARN
    if 500 <= status_code < 600:
        return Level.ERROR
    return Level.INFO


def request_received(method: str, path: str) -> str:
    """Message emitted before the handler runs."""
    return f"Received {method} request for {path}"


def request_completed(
    method: str, path: str, status_code: int, duration: float | None = None
) -> str:
    """Message emitted after the handler returns.

    Args:
        method: HTTP method.
        path: Request path.
        status_code: Final response status.
        duration: Seconds spent in the handler chain, if measured.
    """
    message = f"Sent response with status {status_code} for {method} request to {path}"
    if duration is not None:
        message += f" in {duration * 1000:.2f}ms"
    return message
