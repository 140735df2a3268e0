"""Debounced accumulation of changed item keys."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Protocol

from ..config import SYNC_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)


class BatchDispatcher(Protocol):
    @property
    def running(self) -> bool: ...

    def start(self, item_keys: List[str]) -> None: ...


class DebounceQueue:
    """
    Collect keys until a quiet window elapses, then hand them off in one batch.

    Every enqueue pushes the fire time back. When the timer fires while a batch
    is running, the keys stay queued for the running batch to pick up through
    ``take_ready``.
    """

    def __init__(self, dispatcher: BatchDispatcher, delay_seconds: float = SYNC_DEBOUNCE_SECONDS):
        self.dispatcher = dispatcher
        self.delay_seconds = delay_seconds
        self._pending: Optional[Dict[str, None]] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def pending_keys(self) -> List[str]:
        return list(self._pending or ())

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def enqueue(self, item_keys: Iterable[str]) -> None:
        keys = [str(k) for k in item_keys if k]
        if not keys:
            return

        if self._timer is not None:
            self._timer.cancel()

        if self._pending is None:
            self._pending = {}
        for key in keys:
            self._pending[key] = None

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay_seconds, self._on_timer)
        logger.debug("Queued %d keys (%d pending)", len(keys), len(self._pending))

    def _on_timer(self) -> None:
        self._timer = None
        if self._pending is None:
            return
        if self.dispatcher.running:
            logger.debug("Batch in progress; %d keys wait for re-drain", len(self._pending))
            return

        batch = list(self._pending)
        self._pending = None
        self.dispatcher.start(batch)

    def take_ready(self) -> Optional[List[str]]:
        """Drain the pending keys if their quiet window has already elapsed."""
        if not self._pending or self._timer is not None:
            return None
        batch = list(self._pending)
        self._pending = None
        return batch
