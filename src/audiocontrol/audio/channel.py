"""
Bounded audio channel between the capture callback and the consumption loop.

The channel is a thin wrapper around ``queue.Queue`` that adds the two things a
plain queue lacks for this pipeline: a non-blocking send that reports *why* it
failed (full or closed), and a close operation so the consumer can tell an idle
producer from one that has gone away.
"""

import logging
import threading
from queue import Empty, Full, Queue
from typing import Optional

import numpy as np

from ..errors import ChannelClosed, ChannelFull

logger = logging.getLogger(__name__)


class AudioChannel:
    """FIFO of audio chunks with a fixed capacity."""

    def __init__(self, capacity: int):
        """
        Initialize the channel.

        Args:
            capacity: Maximum number of chunks held at once (must be >= 1)
        """
        if capacity < 1:
            raise ValueError(f"Channel capacity must be at least 1, got {capacity}")

        self.capacity = capacity
        self._queue: Queue = Queue(maxsize=capacity)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def qsize(self) -> int:
        return self._queue.qsize()

    def try_send(self, chunk: np.ndarray) -> None:
        """
        Enqueue a chunk without blocking.

        Raises:
            ChannelClosed: If the channel has been closed
            ChannelFull: If the channel is at capacity
        """
        if self._closed.is_set():
            raise ChannelClosed("audio channel is closed")
        try:
            self._queue.put_nowait(chunk)
        except Full:
            raise ChannelFull(f"audio channel full ({self.capacity} chunks)")

    def recv(self, timeout: Optional[float] = None) -> Optional[np.ndarray]:
        """
        Dequeue the oldest chunk.

        Chunks queued before ``close()`` are still delivered.

        Args:
            timeout: Seconds to wait for a chunk, ``None`` waits indefinitely

        Returns:
            The next chunk, or None if the timeout elapsed with nothing queued

        Raises:
            ChannelClosed: If the channel is closed and empty
        """
        if self._closed.is_set() and self._queue.empty():
            raise ChannelClosed("audio channel is closed")
        try:
            return self._queue.get(timeout=timeout)
        except Empty:
            if self._closed.is_set():
                raise ChannelClosed("audio channel is closed")
            return None

    def close(self) -> None:
        """Mark the channel closed. Further sends fail; queued chunks stay readable."""
        if not self._closed.is_set():
            self._closed.set()
            logger.debug("Audio channel closed")
