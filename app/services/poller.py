# app/services/poller.py
from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

class PeriodicTask(Generic[T]):
    """
    Esegue `func` ogni `interval` secondi finché non viene fermato.
      - un tick viene saltato se il precedente non è ancora terminato
      - un errore nel tick viene loggato, il loop continua
      - `until(result)` vero ferma il task
    """

    def __init__(
        self,
        func: Callable[[], Awaitable[T]],
        interval: float,
        *,
        name: str = "periodic-task",
        until: Optional[Callable[[T], bool]] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.func = func
        self.interval = interval
        self.name = name
        self.until = until

        self.ticks = 0
        self.skipped = 0
        self.last_result: Optional[T] = None

        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._done = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        self._done.clear()
        self._loop_task = asyncio.create_task(self._run(), name=self.name)
        logger.debug("Periodic task started", extra={"task": self.name, "interval": self.interval})

    async def stop(self) -> None:
        for task in (self._loop_task, self._inflight):
            if task is not None and not task.done():
                task.cancel()
        for task in (self._loop_task, self._inflight):
            if task is not None:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._loop_task = None
        self._inflight = None
        self._done.set()
        logger.debug("Periodic task stopped", extra={"task": self.name, "ticks": self.ticks})

    async def wait(self) -> Optional[T]:
        """Attende che il task termini (via `until` o `stop`) e ritorna l'ultimo risultato."""
        await self._done.wait()
        return self.last_result

    async def _run(self) -> None:
        while True:
            if self._inflight is None or self._inflight.done():
                self._inflight = asyncio.create_task(self._tick())
            else:
                self.skipped += 1
                logger.debug("Previous tick still running, skipping", extra={"task": self.name})
            await asyncio.sleep(self.interval)

    async def _tick(self) -> None:
        self.ticks += 1
        try:
            result = await self.func()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Periodic task tick failed", extra={"task": self.name})
            return

        self.last_result = result
        if self.until is not None and self.until(result):
            logger.info("Periodic task condition reached", extra={"task": self.name})
            if self._loop_task is not None:
                self._loop_task.cancel()
            self._done.set()
