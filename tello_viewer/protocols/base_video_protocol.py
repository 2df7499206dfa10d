from abc import ABC, abstractmethod
import logging
import queue
import threading
from typing import Optional

from tello_viewer.models.errors import PacketSourceClosed
from tello_viewer.models.video_frame import CompressedPacket
from tello_viewer.utils.dropping_queue import DroppingQueue, QueueClosed

logger = logging.getLogger(__name__)


class BaseVideoProtocolAdapter(ABC):
    """
    Owns the video transport and turns it into an ordered packet source.

    A daemon receiver thread calls ``read_payload()`` and pushes every
    payload into a bounded drop-oldest buffer; the decode thread pulls
    them back out with ``next_packet()``.
    """

    STOP_TIMEOUT = 2.0

    def __init__(self, max_queue_size: int = 512):
        self._packets = DroppingQueue(maxsize=max_queue_size)
        self._running = threading.Event()
        self._rx_thread: Optional[threading.Thread] = None
        self._seq = 0
        self.packets_received = 0
        self.bytes_received = 0

    # ────────── lifecycle ────────── #
    def start(self) -> None:
        if self._rx_thread and self._rx_thread.is_alive():
            return

        self.open()
        self._running.set()
        self._rx_thread = threading.Thread(
            target=self._receiver_loop, name=self.__class__.__name__, daemon=True
        )
        self._rx_thread.start()

    def stop(self) -> None:
        self._running.clear()
        if self._rx_thread and self._rx_thread.is_alive() \
                and self._rx_thread is not threading.current_thread():
            self._rx_thread.join(timeout=self.STOP_TIMEOUT)
        self.close()
        self._packets.close()

    def is_running(self) -> bool:
        return self._running.is_set()

    # ────────── packet source ────────── #
    def next_packet(self, timeout: Optional[float] = 1.0) -> Optional[CompressedPacket]:
        """
        Return the next packet, or None if none arrived within ``timeout``.

        Raises PacketSourceClosed once the source has stopped and every
        buffered packet has been handed out.
        """
        try:
            return self._packets.get(timeout=timeout)
        except queue.Empty:
            return None
        except QueueClosed:
            raise PacketSourceClosed(self.__class__.__name__) from None

    @property
    def dropped(self) -> int:
        return self._packets.dropped

    # ────────── receiver loop ────────── #
    def _receiver_loop(self) -> None:
        try:
            while self._running.is_set():
                payload = self.read_payload()
                if payload is None:
                    continue
                if payload == b"":
                    logger.info("[%s] end of stream", self.__class__.__name__)
                    break
                self._seq += 1
                self.packets_received += 1
                self.bytes_received += len(payload)
                self._packets.put(CompressedPacket(self._seq, payload))
        except OSError as e:
            if self._running.is_set():
                logger.error("[%s] transport failed: %s", self.__class__.__name__, e)
        finally:
            self._running.clear()
            self._packets.close()

    # ────────── abstract API ────────── #
    @abstractmethod
    def open(self) -> None:
        """Acquire the transport (socket, file, ...)."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release the transport. Must be safe to call twice."""
        raise NotImplementedError

    @abstractmethod
    def read_payload(self) -> Optional[bytes]:
        """
        Read one payload from the transport.

        Returns None on a harmless timeout and ``b""`` at end of stream.
        """
        raise NotImplementedError
