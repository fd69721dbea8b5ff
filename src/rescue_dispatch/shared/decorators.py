from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import httpx
from loguru import logger

P = ParamSpec("P")
R = TypeVar("R")


def describe_error(exc: BaseException) -> str:
    """Return a one-line description of ``exc`` for log output.

    For HTTP status errors the response body is appended, since the courier and
    Airtable APIs put the actual reason there rather than in the status line.
    """
    message = f"{type(exc).__name__}: {exc}"
    if isinstance(exc, httpx.HTTPStatusError):
        message += f" | response body: {exc.response.text}"
    return message


def log_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Catch, log, and re-raise any exception raised by the decorated method.

    Usage::

        @log_errors
        def cancel_order(self, identifier: str, reason: str) -> None: ...
    """

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            logger.error(f"[{func.__qualname__}] {describe_error(exc)}")
            raise

    return wrapper
