"""Checkpoint gate: holds the debate between phases until released."""

import asyncio
import logging
import time
from collections.abc import Callable

from cedasim.cancellation import CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_CHECKPOINT_SEC = 2.0


class CheckpointGate:
    """Pacing primitive between debate phases.

    A pending wait() is released by the first of:
      * the run being cancelled (immediately),
      * an explicit trigger_next() (consumed on release),
      * auto-play being on and the gate having been open, un-paused, for
        ``threshold_sec`` in total.

    Pausing freezes the auto-play countdown without releasing the gate; in
    manual mode there is no countdown at all, so pause changes nothing there.
    The gate sleeps on an event that every control method sets, rather than
    polling.
    """

    def __init__(
        self,
        threshold_sec: float = DEFAULT_CHECKPOINT_SEC,
        clock: Callable[[], float] = time.monotonic,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.threshold_sec = threshold_sec
        self._clock = clock
        self._on_change = on_change
        self._autoplay = False
        self._paused = False
        self._step_ready = False
        self._next_requested = False
        self._pending = False
        self._wake = asyncio.Event()

    @property
    def autoplay(self) -> bool:
        return self._autoplay

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def step_ready(self) -> bool:
        return self._step_ready

    @property
    def pending(self) -> bool:
        return self._pending

    def set_autoplay(self, enabled: bool) -> None:
        self._autoplay = enabled
        self._changed()

    def set_paused(self, paused: bool) -> None:
        self._paused = paused
        self._changed()

    def trigger_next(self) -> None:
        self._next_requested = True
        self._wake.set()

    def reset(self) -> None:
        """Back to manual, un-paused, nothing queued."""
        self._autoplay = False
        self._paused = False
        self._next_requested = False
        self._set_step_ready(False)
        self._wake.set()

    async def wait(self, token: CancellationToken) -> None:
        if self._pending:
            raise RuntimeError("A checkpoint is already pending for this run")
        self._pending = True
        self._set_step_ready(True)
        token.on_cancel(self._wake.set)
        elapsed = 0.0
        try:
            while True:
                if token.cancelled:
                    logger.debug("Checkpoint released by cancellation")
                    return
                if self._next_requested:
                    self._next_requested = False
                    logger.debug("Checkpoint released by explicit trigger")
                    return
                counting = self._autoplay and not self._paused
                if counting and elapsed >= self.threshold_sec:
                    logger.debug("Checkpoint released by auto-play after %.2fs", elapsed)
                    return

                self._wake.clear()
                started = self._clock()
                timeout = self.threshold_sec - elapsed if counting else None
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout)
                except TimeoutError:
                    pass
                if counting:
                    elapsed += self._clock() - started
        finally:
            token.remove_callback(self._wake.set)
            self._pending = False
            self._set_step_ready(False)

    def _set_step_ready(self, ready: bool) -> None:
        if self._step_ready != ready:
            self._step_ready = ready
            self._changed()

    def _changed(self) -> None:
        self._wake.set()
        if self._on_change is not None:
            self._on_change()
