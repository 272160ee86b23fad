from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from loguru import logger

P = ParamSpec("P")
R = TypeVar("R")


def log_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Log any exception raised by the decorated callable, then re-raise it.

    The log line names the qualified function, the exception type and its
    message, so failures in infrastructure calls are traceable from the log
    alone.

    Usage::

        @log_errors
        def fetch_supplier_orders(self, supplier_id: str) -> list[dict]: ...
    """

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            logger.error(f"[{func.__qualname__}] {type(exc).__name__}: {exc}")
            raise

    return wrapper


def reraise_as(
    error_type: type[Exception],
    catch: type[Exception] | tuple[type[Exception], ...] = Exception,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Translate exceptions of type ``catch`` into ``error_type``.

    The original exception is chained as ``__cause__``. Apply it beneath
    ``log_errors`` so the translated error is the one that gets logged::

        @log_errors
        @reraise_as(StorageError, catch=SQLAlchemyError)
        def commit(self) -> None: ...
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except catch as exc:
                raise error_type(str(exc)) from exc

        return wrapper

    return decorator
