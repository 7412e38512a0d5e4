"""Stage timing and logging setup.

Usage:
    from coderag.utils.timing import log_elapsed

    timings: dict[str, float] = {}
    with log_elapsed("hybrid_search", timings):
        results = await search.search(query)

Timings are recorded into the dict the caller passes in, so each query keeps
its own numbers and nothing is shared between concurrent queries.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from coderag.settings import LOG_LEVEL

logger = logging.getLogger(__name__)

__all__ = ["log_elapsed", "configure_logging"]


@contextmanager
def log_elapsed(component: str, timings: dict[str, float] | None = None) -> Iterator[None]:
    """Log how long the wrapped block took.

    Args:
        component: Name used in the log line and as the timings key
        timings: Optional per-query dict receiving elapsed seconds
    """
    start_time = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed = time.perf_counter() - start_time
        logger.debug(f"{component} failed after {elapsed:.3f}s: {e}")
        raise
    finally:
        elapsed = time.perf_counter() - start_time
        if timings is not None:
            timings[component] = elapsed
    logger.debug(f"{component} took {elapsed:.3f}s")


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for scripts and servers embedding the pipeline.

    Args:
        level: Log level name (defaults to LOG_LEVEL from settings)
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
