import functools
import inspect
import time
from typing import Any, Callable, Tuple, TypeVar

from loguru import logger

C = TypeVar("C", bound=Callable[..., Any])


def log_execution(enabled: bool = True) -> Callable[[C], C]:
    """
    Decorator factory that logs how long the decorated function or method took.

    Args:
        enabled (bool): Flag to enable or disable logging.

    Returns:
        Callable: A decorator that wraps the target function or method.
    """

    def decorator(func: C) -> C:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                try:
                    return await func(*args, **kwargs)
                finally:
                    if enabled:
                        _log_execution_details(func, start_time, args)

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                if enabled:
                    _log_execution_details(func, start_time, args)

        return sync_wrapper  # type: ignore

    return decorator


def _log_execution_details(
    f: Callable[..., Any],
    start: float,
    args: Tuple[Any, ...],
) -> None:
    """
    Logs how long the function or method took.

    Args:
        f (Callable): The function or method that ran.
        start (float): perf_counter() value taken before the call.
        args (Tuple[Any, ...]): Arguments passed to the call, used to detect
                                methods so the owning class can be named.
    """
    owner = f.__qualname__.rpartition(".")[0]
    if owner and args and args[0].__class__.__name__ == owner:
        name = f.__qualname__
    else:
        name = f.__name__

    logger.debug(f"Executed {name} in {time.perf_counter() - start:f} seconds")
