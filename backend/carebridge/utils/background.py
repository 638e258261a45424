"""Shared worker pool for fire-and-forget background jobs.

Jobs are best effort: failures are logged, results are never awaited.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from carebridge.config import BACKGROUND_WORKER_COUNT

logger = logging.getLogger(__name__)

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=BACKGROUND_WORKER_COUNT, thread_name_prefix="background")
        return _executor


def _log_failure(description: str, future: Future) -> None:
    if future.cancelled():
        logger.warning(f"Background job '{description}' was cancelled")
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Background job '{description}' failed", exc_info=error)


def run_in_background(fn: Callable, *args, description: Optional[str] = None, **kwargs) -> Future:
    description = description or getattr(fn, "__name__", "job")
    future = get_executor().submit(fn, *args, **kwargs)
    future.add_done_callback(lambda f: _log_failure(description, f))
    return future


def shutdown_executor(wait: bool = False) -> None:
    global _executor
    with _executor_lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=wait)
