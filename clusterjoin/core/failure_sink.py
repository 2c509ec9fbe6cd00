"""Hand-off of fatal join failures to the owning process."""

from __future__ import annotations

import asyncio

from loguru import logger

from clusterjoin.core.errors import TerminalJoinError
from clusterjoin.datastructures.type_aliases import ControllerName


class FailureSink:
    """Asynchronous channel of ``TerminalJoinError`` values.

    Senders never block: delivery is ``put_nowait`` on an unbounded queue, so a
    controller can report exhaustion before anyone is listening. Each
    controller name may deliver at most once; later deliveries are dropped.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[TerminalJoinError] = asyncio.Queue()
        self._senders: set[ControllerName] = set()

    def deliver(self, error: TerminalJoinError) -> bool:
        """Queue ``error``. Returns False if its controller already delivered."""
        if error.controller in self._senders:
            logger.warning(
                f"Dropping duplicate terminal error from {error.controller}: {error}"
            )
            return False
        self._senders.add(error.controller)
        self._queue.put_nowait(error)
        return True

    async def get(self) -> TerminalJoinError:
        """Wait for the next terminal error."""
        return await self._queue.get()

    def get_nowait(self) -> TerminalJoinError:
        """Return a queued terminal error or raise ``asyncio.QueueEmpty``."""
        return self._queue.get_nowait()

    def empty(self) -> bool:
        return self._queue.empty()

    def delivered_by(self, controller: ControllerName) -> bool:
        return controller in self._senders

    def __len__(self) -> int:
        return self._queue.qsize()
