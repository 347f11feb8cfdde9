"""Periodic at-risk review tied to the lifetime of an open release view."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import Any

from relready.core import DEFAULT_REVIEW_INTERVAL
from relready.prep_items import PrepItemStore

logger = logging.getLogger(__name__)


class PeriodicTicker:
    """Calls *callback* every *interval* seconds until stopped.

    The first call happens one interval after ``start()``. Errors raised by
    the callback are logged and the ticker keeps running.
    """

    def __init__(self, interval: float, callback: Callable[[], Any]) -> None:
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)
        self.interval = interval
        self.callback = callback
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.callback()
            except Exception:
                logger.exception("Periodic callback %r failed", self.callback)


class ReleaseView:
    """Lifecycle scope of an open release detail view.

    Opening the view starts the at-risk review ticker; closing it cancels
    the ticker so no background timer outlives the view.

        async with ReleaseView(store) as view:
            ...
    """

    def __init__(self, store: PrepItemStore, *, review_interval: float = DEFAULT_REVIEW_INTERVAL) -> None:
        self.store = store
        self.ticker = PeriodicTicker(review_interval, store.review_at_risk)

    @property
    def is_open(self) -> bool:
        return self.ticker.running

    def open(self) -> None:
        self.store.load()
        self.ticker.start()
        logger.debug("Release view opened; reviewing at-risk items every %ss", self.ticker.interval)

    async def close(self) -> None:
        await self.ticker.stop()
        self.store.cancel_confirmation()
        logger.debug("Release view closed")

    async def __aenter__(self) -> ReleaseView:
        self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
