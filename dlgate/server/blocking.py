"""
Run blocking store and blob calls off the event loop with a deadline.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from dlgate.common.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_blocking(
    func: Callable[..., T],
    *args: Any,
    timeout: float,
    what: str,
    request_id: str | None = None,
    failure_message: str = "Internal server error",
) -> T:
    """Await ``func(*args)`` on the default executor.

    Timeouts and database errors become ``UpstreamFailure``; gateway errors
    raised by ``func`` propagate unchanged. On timeout or cancellation the
    caller stops waiting at once; the worker thread finishes on its own.
    """
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(None, functools.partial(func, *args))
    try:
        return await asyncio.wait_for(future, timeout)
    except asyncio.TimeoutError as exc:
        logger.error("%s timed out after %ss [request_id=%s]", what, timeout, request_id)
        raise UpstreamFailure(failure_message) from exc
    except SQLAlchemyError as exc:
        logger.exception("%s failed [request_id=%s]", what, request_id)
        raise UpstreamFailure(failure_message) from exc
