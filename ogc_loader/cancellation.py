# ============================================================================
# CONTEXT - CANCELLATION TOKEN
# ============================================================================
# STATUS: Foundation - Cooperative cancellation for load sessions
# PURPOSE: One token per load session, threaded through every HTTP call
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: CancellationToken, is_cancellation
# DEPENDENCIES: asyncio (stdlib)
# PATTERNS: Explicit context object instead of implicit closures
# ============================================================================

"""
Cancellation token for load sessions.

Every I/O call of a session is executed through CancellationToken.run(),
which binds the call to the token as an asyncio task. Cancelling the
token cancels all of those tasks at once; the awaiting code then sees a
LoadCancelledError instead of a bare asyncio.CancelledError.

A cancellation of the surrounding task that did NOT originate from the
token (e.g. event loop shutdown) is propagated unchanged.

Usage:
    token = CancellationToken()
    response = await token.run(client.get(url))
    ...
    token.cancel("Extent changed")   # from another task
"""

import asyncio
from typing import Any, Awaitable, Optional, Set

from .exceptions import LoadCancelledError


class CancellationToken:
    """Shared cancellation signal for one load session."""

    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None
        self._tasks: Set[asyncio.Future] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "Cancelled") -> None:
        """
        Cancel the token and every in-flight call bound to it.

        Idempotent: the first reason wins.
        """
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        for task in list(self._tasks):
            task.cancel()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise LoadCancelledError(self._reason or "Cancelled")

    async def run(self, awaitable: Awaitable[Any]) -> Any:
        """
        Await `awaitable` as a task bound to this token.

        Raises:
            LoadCancelledError: token was cancelled before or during the call
        """
        if self._cancelled:
            # Close un-started coroutines so they do not warn about never being awaited
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            self.raise_if_cancelled()

        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        try:
            result = await task
        except asyncio.CancelledError:
            if self._cancelled and task.cancelled():
                raise LoadCancelledError(self._reason or "Cancelled") from None
            raise
        finally:
            self._tasks.discard(task)

        # The call may have completed just before cancel() ran
        self.raise_if_cancelled()
        return result

    def __repr__(self) -> str:
        state = f"cancelled={self._reason!r}" if self._cancelled else "live"
        return f"<CancellationToken {state} in_flight={len(self._tasks)}>"


def is_cancellation(error: BaseException) -> bool:
    """True if `error` means "superseded" rather than a genuine failure."""
    return isinstance(error, LoadCancelledError)
