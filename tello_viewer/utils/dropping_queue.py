import queue


class QueueClosed(Exception):
    """Raised by get() once the queue is closed and empty."""


class DroppingQueue(queue.Queue):
    """
    A bounded queue that drops the oldest item when it is full and can be
    closed by the producer.

    Items keep FIFO order; under pressure the consumer simply skips ahead.
    """

    def __init__(self, maxsize: int = 0):
        super().__init__(maxsize)
        self.dropped = 0
        self._closed = False

    def put(self, item, block=True, timeout=None):
        """
        Put an item into the queue, discarding the oldest one if it is full.

        Never raises ``queue.Full``: dropping and enqueuing happen as one
        critical section under the queue's internal mutex.
        """
        with self.mutex:
            if self._closed:
                return
            if self.maxsize > 0 and self._qsize() >= self.maxsize:
                self._get()
                self.dropped += 1
                if self.unfinished_tasks > 0:
                    self.unfinished_tasks -= 1

            self._put(item)
            self.unfinished_tasks += 1
            self.not_empty.notify()

    def put_nowait(self, item):
        self.put(item, block=False)

    def get(self, block=True, timeout=None):
        """
        Like ``Queue.get`` but raises ``QueueClosed`` instead of waiting
        forever once the producer has closed the queue and it is drained.
        """
        with self.not_empty:
            if not block:
                if not self._qsize():
                    if self._closed:
                        raise QueueClosed
                    raise queue.Empty
            else:
                if timeout is not None and timeout < 0:
                    raise ValueError("'timeout' must be a non-negative number")
                if not self.not_empty.wait_for(
                    lambda: self._qsize() or self._closed, timeout
                ):
                    raise queue.Empty
                if not self._qsize():
                    raise QueueClosed
            item = self._get()
            self.not_full.notify()
            return item

    def close(self) -> None:
        """Stop accepting items and wake up any blocked consumer."""
        with self.mutex:
            self._closed = True
            self.not_empty.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed
