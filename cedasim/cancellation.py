"""Cooperative cancellation for one simulation run."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class RunCancelled(Exception):
    """Raised at a suspension point after the run was aborted by the user.

    Not an error: the driver swallows it and discards whatever result the
    interrupted call produced.
    """


class CancellationToken:
    """Shared flag checked by every continuation of one run.

    Cancelling does not interrupt outstanding network calls; it only makes
    their eventual results no-ops.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        logger.debug("Run cancelled, %d waiter(s) notified", len(self._callbacks))
        for callback in self._callbacks:
            callback()
        self._callbacks.clear()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Call ``callback`` when the token is cancelled (now, if it already is)."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RunCancelled()
