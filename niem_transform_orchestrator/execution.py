"""Engine call execution with a wall-clock budget."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional, TypeVar

import structlog

from niem_transform_orchestrator.errors import (
    BadRequestError,
    EngineTimeoutError,
    InternalFailureError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def run_with_timeout(
    func: Callable[..., T],
    *args: Any,
    timeout: Optional[float],
    operation: str,
) -> T:
    """Run an engine call, bounding its wall-clock time.

    The call runs on a daemon thread. When the budget is exceeded the thread
    is abandoned (Python threads cannot be killed) and the caller gets an
    error immediately; scratch cleanup in the caller still runs, and an
    abandoned call does not keep the interpreter from exiting.

    Args:
        func: Engine callable
        *args: Positional arguments for ``func``
        timeout: Budget in seconds, or None to run without a budget
        operation: Name of the engine operation, for errors and logs

    Returns:
        The value returned by ``func``

    Raises:
        EngineTimeoutError: If the call exceeds ``timeout``
        BadRequestError: Propagated unchanged from ``func``
        InternalFailureError: If ``func`` raises anything else
    """
    log = logger.bind(operation=operation)
    started = time.monotonic()
    outcome: Dict[str, Any] = {}

    def call() -> None:
        try:
            outcome["result"] = func(*args)
        except Exception as e:
            outcome["error"] = e

    worker = threading.Thread(target=call, name=f"niem-engine-{operation}", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        log.error("engine_call_timeout", timeout_seconds=timeout)
        raise EngineTimeoutError(operation, timeout)

    error = outcome.get("error")
    if isinstance(error, (BadRequestError, InternalFailureError)):
        raise error
    if error is not None:
        log.error("engine_call_failed", error=str(error), error_type=type(error).__name__)
        raise InternalFailureError(
            f"Engine call {operation} failed: {str(error)}",
            operation=operation,
        ) from error

    log.debug("engine_call_complete", elapsed_seconds=round(time.monotonic() - started, 3))
    return outcome["result"]
