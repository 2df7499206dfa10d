import logging
import threading
import time
from typing import Optional

from tello_viewer.models.base_video_model import BaseFrameDecoder
from tello_viewer.models.decode_result import DecodeError, Frame, NoFrame
from tello_viewer.models.errors import PacketSourceClosed
from tello_viewer.protocols.base_video_protocol import BaseVideoProtocolAdapter
from tello_viewer.services.frame_relay import BaseFrameRelay, StreamRelay

logger = logging.getLogger(__name__)


class VideoReceiverService:
    """
    Drives the decode side of the pipeline: packet source -> decoder ->
    relay, on its own thread, at whatever pace packets arrive.

    The only thing this loop ever waits on is the packet source. Decode
    errors are logged and skipped; the loop ends when the source closes.
    """

    STATS_INTERVAL = 5.0

    def __init__(
        self,
        packet_source: BaseVideoProtocolAdapter,
        decoder: BaseFrameDecoder,
        relay: BaseFrameRelay,
        poll_timeout: float = 1.0,
    ):
        self.packet_source = packet_source
        self.decoder = decoder
        self.relay = relay
        self.poll_timeout = poll_timeout

        self.packets = 0
        self.frames = 0
        self.no_frames = 0
        self.errors = 0

        self._running = threading.Event()
        self._receiver_thread: Optional[threading.Thread] = None

    # ────────── lifecycle ────────── #
    def start(self) -> None:
        if self._receiver_thread and self._receiver_thread.is_alive():
            return

        self._running.set()
        self._receiver_thread = threading.Thread(
            target=self._receiver_loop, name="VideoReceiver", daemon=True
        )
        self._receiver_thread.start()

    def stop(self) -> None:
        self._running.clear()
        self.join(timeout=self.poll_timeout + 1.0)

    def join(self, timeout: Optional[float] = None) -> None:
        if self._receiver_thread and self._receiver_thread.is_alive():
            self._receiver_thread.join(timeout=timeout)

    def is_running(self) -> bool:
        return bool(self._receiver_thread and self._receiver_thread.is_alive())

    @property
    def stats(self) -> dict:
        return {
            "packets": self.packets,
            "frames": self.frames,
            "no_frames": self.no_frames,
            "errors": self.errors,
        }

    # ────────── receiver loop ────────── #
    def _receiver_loop(self) -> None:
        stats_timer = time.monotonic()
        frames_at_timer = 0
        try:
            while self._running.is_set():
                try:
                    packet = self.packet_source.next_packet(timeout=self.poll_timeout)
                except PacketSourceClosed:
                    logger.info("[decode] packet source closed after %d packets", self.packets)
                    self._handle(self.decoder.flush())
                    break
                if packet is None:
                    continue

                self.packets += 1
                self._handle(self.decoder.decode(packet))

                now = time.monotonic()
                if now - stats_timer >= self.STATS_INTERVAL:
                    fps = (self.frames - frames_at_timer) / (now - stats_timer)
                    logger.info("[decode] ~%4.1f fps (%d errors, %d dropped by relay)",
                                fps, self.errors, self.relay.dropped)
                    stats_timer, frames_at_timer = now, self.frames
        finally:
            self._running.clear()
            if isinstance(self.relay, StreamRelay):
                self.relay.close()
            logger.info("[decode] receiver loop has stopped (%s)", self.stats)

    def _handle(self, result) -> None:
        if isinstance(result, Frame):
            self.frames += 1
            self.relay.publish(result.frame)
        elif isinstance(result, DecodeError):
            self.errors += 1
            logger.warning("[decode] packet %d rejected: %s", self.packets, result.reason)
        elif isinstance(result, NoFrame):
            self.no_frames += 1
            logger.debug("[decode] no frame yet (packet %d)", self.packets)
