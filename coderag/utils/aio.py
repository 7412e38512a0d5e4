"""Asyncio helpers for collaborator calls."""

import inspect
from typing import Awaitable, TypeVar

__all__ = ["maybe_await", "describe_error"]

T = TypeVar("T")


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Await ``value`` if it is awaitable, else return it unchanged.

    Lets sync and async collaborators share one call site.
    """
    if inspect.isawaitable(value):
        return await value
    return value  # type: ignore[return-value]


def describe_error(error: BaseException) -> str:
    """Short ``Type: message`` rendering for log lines."""
    message = str(error) or "no details"
    return f"{type(error).__name__}: {message}"
