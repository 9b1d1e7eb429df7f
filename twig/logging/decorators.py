"""
Decorators for automatic logging of repository operations.

These decorators enable traceability without cluttering business logic.
"""

import functools
import inspect
import time
from typing import Any, Callable

from .logger import get_twig_logger, log_repository_operation


def track_operation(operation_type: str) -> Callable:
    """
    Decorator to track a repository operation.

    Logs the call with its (truncated) arguments, then either its completion
    with elapsed time or the error it raised. Errors are re-raised unchanged.

    Args:
        operation_type: Type of operation (e.g., "add", "commit", "merge")

    Example:
        >>> @track_operation("commit")
        ... def commit(self, message: str) -> Commit:
        ...     ...
    """

    def decorator(func: Callable) -> Callable:
        sig = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            log = get_twig_logger("repository")

            bound_args = sig.bind(*args, **kwargs)
            bound_args.apply_defaults()
            arguments = {
                k: str(v)[:100]
                for k, v in bound_args.arguments.items()
                if k not in ("self", "cls")
            }

            log_repository_operation(
                log,
                operation=operation_type,
                function=func.__name__,
                arguments=arguments,
            )

            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                log_repository_operation(
                    log,
                    operation=f"{operation_type}_error",
                    function=func.__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                    success=False,
                )
                raise

            log_repository_operation(
                log,
                operation=f"{operation_type}_complete",
                function=func.__name__,
                elapsed_ms=(time.perf_counter() - start_time) * 1000,
                success=True,
            )
            return result

        return wrapper

    return decorator
