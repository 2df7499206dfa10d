import logging
import queue
import threading
from abc import ABC, abstractmethod
from typing import Iterator, Optional

from tello_viewer.models.video_frame import DecodedFrame
from tello_viewer.utils.dropping_queue import DroppingQueue, QueueClosed

logger = logging.getLogger(__name__)


class BaseFrameRelay(ABC):
    """
    Hands the newest decoded frame from the decode thread to whatever
    renders it. Frames are never queued up behind a slow renderer: a
    stale picture is worse than a skipped one.
    """

    def __init__(self):
        self.published = 0
        self._closed = False

    @abstractmethod
    def publish(self, frame: DecodedFrame) -> None:
        """Offer a freshly decoded frame. Must not block on the consumer."""
        raise NotImplementedError

    @property
    @abstractmethod
    def dropped(self) -> int:
        """Frames that were replaced before anyone looked at them."""
        raise NotImplementedError

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> dict:
        return {"published": self.published, "dropped": self.dropped}


class SlotRelay(BaseFrameRelay):
    """
    Single overwrite slot for poll-driven renderers.

    The lock is held only while swapping the reference, never while
    decoding or drawing.
    """

    def __init__(self):
        super().__init__()
        self._lock = threading.Lock()
        self._frame: Optional[DecodedFrame] = None
        self._dropped = 0
        self.taken = 0

    def publish(self, frame: DecodedFrame) -> None:
        with self._lock:
            if self._frame is not None:
                self._dropped += 1
            self._frame = frame
            self.published += 1

    def try_take(self) -> Optional[DecodedFrame]:
        """
        Remove and return the pending frame without ever waiting.

        Returns None when the slot is empty *or* when the decode thread
        happens to hold the lock right now; the caller just tries again
        on its next tick.
        """
        if not self._lock.acquire(blocking=False):
            return None
        try:
            frame, self._frame = self._frame, None
        finally:
            self._lock.release()
        if frame is not None:
            self.taken += 1
        return frame

    @property
    def dropped(self) -> int:
        return self._dropped

    def stats(self) -> dict:
        return {**super().stats(), "taken": self.taken}


class StreamRelay(BaseFrameRelay):
    """
    Ordered frame stream for message-driven consumers (e.g. the web view).

    Backed by a small drop-oldest queue: delivery may skip frames when the
    consumer falls behind, but never reorders them.
    """

    def __init__(self, maxsize: int = 2):
        super().__init__()
        if maxsize < 1:
            raise ValueError("StreamRelay needs room for at least one frame")
        self._queue = DroppingQueue(maxsize=maxsize)
        self.delivered = 0

    def publish(self, frame: DecodedFrame) -> None:
        if self._closed:
            return
        self._queue.put(frame)
        self.published += 1

    def close(self) -> None:
        super().close()
        self._queue.close()

    def subscribe(self, timeout: float = 1.0) -> Iterator[Optional[DecodedFrame]]:
        """
        Yield frames in publish order until the relay is closed.

        Yields None whenever ``timeout`` passes without a frame so the
        consumer gets a chance to check its own stop flag.
        """
        while True:
            try:
                frame = self._queue.get(timeout=timeout)
            except queue.Empty:
                yield None
                continue
            except QueueClosed:
                logger.debug("[relay] stream closed after %d frames", self.delivered)
                return
            self.delivered += 1
            yield frame

    @property
    def dropped(self) -> int:
        return self._queue.dropped

    def stats(self) -> dict:
        return {**super().stats(), "delivered": self.delivered}
