import functools
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from wsi.domain.shared.error import StorageUnavailableError

P = ParamSpec("P")
R = TypeVar("R")


def storage_errors(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Re-raise SQLAlchemy failures as StorageUnavailableError."""

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await fn(*args, **kwargs)
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"{fn.__qualname__} failed: {e}") from e

    return wrapper
