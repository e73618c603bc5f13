"""
Channel Adapter

Unbuffered hand-off between two asyncio workers plus the shared error slot.

A send completes only once the receiver has taken the item, so a producer
can never run ahead of its consumer. Every send and receive is an await
point and therefore a cancellation point.
"""

import asyncio
import logging
from typing import AsyncIterator, Generic, Optional, TypeVar

from dataflow.errors import PipelineError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised when sending on, or receiving from, a closed channel"""


class Channel(Generic[T]):
    """
    Single-producer, single-consumer rendezvous channel.

    Example usage:
        ch: Channel[Tick] = Channel("ticks-5min")

        # producer
        await ch.send(tick)
        await ch.close()

        # consumer
        async for tick in ch:
            ...
    """

    def __init__(self, name: str = "channel"):
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        """True once the producer has closed the channel"""
        return self._closed

    async def send(self, item: T) -> None:
        """
        Hand one item to the consumer, waiting until it has been taken.

        Raises:
            ChannelClosed: If the channel was already closed
        """
        if self._closed:
            raise ChannelClosed(f"send on closed channel {self.name}")
        await self._queue.put(item)
        await self._queue.join()

    async def close(self) -> None:
        """Mark end of stream; the consumer sees it after the last item"""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)
        logger.debug(f"Channel {self.name} closed")

    async def receive(self) -> T:
        """
        Take the next item, waiting for the producer if necessary.

        Raises:
            ChannelClosed: Once the stream has ended
        """
        if self._drained:
            raise ChannelClosed(f"receive on drained channel {self.name}")
        item = await self._queue.get()
        self._queue.task_done()
        if item is _CLOSED:
            self._drained = True
            raise ChannelClosed(f"channel {self.name} closed")
        return item

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        try:
            return await self.receive()
        except ChannelClosed:
            raise StopAsyncIteration from None


class ErrorSlot:
    """
    Run-wide error channel shared by every worker.

    Reporting never blocks. The first error reported wins; later ones
    are logged and dropped.
    """

    def __init__(self):
        self._error: Optional[PipelineError] = None
        self._event = asyncio.Event()
        self.dropped = 0

    @property
    def error(self) -> Optional[PipelineError]:
        """First reported error, if any"""
        return self._error

    def report(self, error: PipelineError) -> None:
        """Record an error; only the first one is kept"""
        if self._error is not None:
            self.dropped += 1
            logger.debug(f"Dropping error after first failure: {error}")
            return
        logger.error(f"Pipeline error: {error}")
        self._error = error
        self._event.set()

    async def wait(self) -> PipelineError:
        """Wait until an error has been reported and return it"""
        await self._event.wait()
        return self._error
