import logging
from functools import wraps
from typing import Any, Callable, Dict, Optional, ParamSpec, Tuple, Type, TypeVar

from fastapi import HTTPException

from .exceptions.base import AppError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

ErrorMapping = Dict[Type[Exception], Tuple[int, str]]

FALLBACK_ERRORS: ErrorMapping = {
    AppError: (500, "Internal application error"),
    ValueError: (400, "Invalid input"),
}


def _context(func: Callable, exc: Exception) -> Dict[str, Any]:
    """Structured ``extra`` for log records, picked up by the JSON formatter."""
    context: Dict[str, Any] = {"function_name": func.__qualname__, "exception_type": type(exc).__name__}
    if isinstance(exc, AppError):
        context["error_code"] = exc.error_code
        context["details"] = exc.details
    return context


def _to_http(exc: Exception, mapping: ErrorMapping) -> Optional[HTTPException]:
    for exc_type, (status_code, message) in mapping.items():
        if not isinstance(exc, exc_type):
            continue
        detail: Dict[str, Any] = {"message": message}
        if isinstance(exc, AppError):
            detail.update(error_code=exc.error_code, details=exc.details)
        return HTTPException(status_code=status_code, detail=detail)
    return None


def handle_exceptions(
    error_mapping: Optional[ErrorMapping] = None,
    log_level: int = logging.ERROR,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Translate exceptions raised by a route into HTTP errors.

    Args:
        error_mapping: Exception type to (status_code, message). Checked in
            order, before the fallback mapping.
        log_level: Level used when logging a mapped exception

    Usage:
        @router.get("/projects/{project_id}")
        @handle_exceptions({ResourceNotFoundError: (404, "Resource not found")})
        async def get_project(project_id: str):
            ...
    """
    mapping: ErrorMapping = {**(error_mapping or {})}
    for exc_type, mapped in FALLBACK_ERRORS.items():
        mapping.setdefault(exc_type, mapped)

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except Exception as e:
                http_error = _to_http(e, mapping)
                if http_error is None:
                    logger.exception(f"Unhandled error in {func.__qualname__}")
                    raise HTTPException(status_code=500, detail={"message": "Internal server error"}) from e
                logger.log(log_level, str(e), extra=_context(func, e))
                raise http_error from e

        return wrapper

    return decorator


def handle_service_errors(
    default_return_value: Optional[T] = None,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Log and absorb failures of a non-critical async operation.

    Args:
        default_return_value: Returned instead of raising
        exceptions: Exception types to absorb; others propagate
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except exceptions as e:
                logger.warning(str(e), extra=_context(func, e))
                return default_return_value

        return wrapper

    return decorator
