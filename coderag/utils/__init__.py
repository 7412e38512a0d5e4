"""Shared helpers."""

from coderag.utils.aio import describe_error, maybe_await
from coderag.utils.timing import configure_logging, log_elapsed

__all__ = ["configure_logging", "describe_error", "log_elapsed", "maybe_await"]
