"""Execution context carried into every connector call.

Every connector operation is synchronous and takes an ``ExecutionContext``
first. The context carries the caller's cancellation flag and optional
deadline; connectors call :meth:`ExecutionContext.check` before work and
between rows so that a caller who has given up gets a ``CancelledError``
instead of a late success. Nothing in dosa imposes a timeout of its own.

Manifesto:
    - **Caller-driven:** Deadlines and cancellation come only from the caller
    - **Composable:** ``with_timeout`` / ``child`` derive contexts; the
      shortest deadline wins and cancelling a parent cancels its children
    - **Thread-safe:** Cancellation is a ``threading.Event``; any thread may
      cancel a context another thread is using

Examples:
    >>> ctx = background().with_timeout(5.0)
    >>> ctx.done()
    False
    >>> ctx.cancel()
    >>> ctx.check("read")
    Traceback (most recent call last):
    ...
    dosa.core.errors.CancelledError: read cancelled

Tags:
    cancellation, deadline, execution, dosa-core

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from dosa.core.errors import CancelledError, DeadlineExceededError


@dataclass
class ExecutionContext:
    """Cancellation and deadline state for one logical caller operation.

    Attributes:
        deadline: Absolute deadline on the monotonic clock, or None
        parent: Context this one was derived from; its cancellation propagates
    """

    deadline: float | None = None
    parent: ExecutionContext | None = field(default=None, repr=False)
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.parent is not None and self.parent.cancelled

    def effective_deadline(self) -> float | None:
        """Earliest deadline along the parent chain."""
        deadlines = []
        ctx: ExecutionContext | None = self
        while ctx is not None:
            if ctx.deadline is not None:
                deadlines.append(ctx.deadline)
            ctx = ctx.parent
        return min(deadlines) if deadlines else None

    def remaining(self) -> float | None:
        """Seconds until the deadline (negative once passed), or None without one."""
        deadline = self.effective_deadline()
        if deadline is None:
            return None
        return deadline - time.monotonic()

    def is_expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def done(self) -> bool:
        """True once the context is cancelled or past its deadline."""
        return self.cancelled or self.is_expired()

    def check(self, operation: str = "operation") -> None:
        """Raise if the caller has given up.

        Raises:
            CancelledError: The context (or a parent) was cancelled
            DeadlineExceededError: The deadline has passed
        """
        if self.cancelled:
            raise CancelledError(f"{operation} cancelled").with_context(operation=operation)
        if self.is_expired():
            raise DeadlineExceededError(f"{operation} exceeded its deadline").with_context(
                operation=operation
            )

    def child(self) -> ExecutionContext:
        """Derived context that can be cancelled independently of this one."""
        return ExecutionContext(parent=self)

    def with_timeout(self, seconds: float) -> ExecutionContext:
        """Derived context whose deadline is at most ``seconds`` from now."""
        if seconds < 0:
            raise ValueError(f"Timeout must be non-negative, got {seconds}")
        return ExecutionContext(deadline=time.monotonic() + seconds, parent=self)


def background() -> ExecutionContext:
    """A fresh context with no deadline."""
    return ExecutionContext()


def with_timeout(seconds: float) -> ExecutionContext:
    """A fresh context that expires ``seconds`` from now."""
    return background().with_timeout(seconds)


__all__ = [
    "ExecutionContext",
    "background",
    "with_timeout",
]
