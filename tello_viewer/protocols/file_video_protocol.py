import logging
import time
from typing import BinaryIO, Final, Optional

from tello_viewer.protocols.base_video_protocol import BaseVideoProtocolAdapter

logger = logging.getLogger(__name__)


class FileVideoProtocolAdapter(BaseVideoProtocolAdapter):
    """
    Drop-in packet source that replays a raw H.264 capture (for example a
    ``--dump-packets`` file) instead of listening to the drone.

    The file is cut into datagram-sized chunks and paced at
    ``packets_per_second``; the source closes at end of file.
    """

    DEFAULT_CHUNK_SIZE: Final = 1460

    def __init__(
        self,
        path: str,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        packets_per_second: float = 400.0,
        loop: bool = False,
        max_queue_size: int = 512,
    ):
        super().__init__(max_queue_size=max_queue_size)
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.path = path
        self.chunk_size = chunk_size
        self.interval = 1.0 / packets_per_second if packets_per_second > 0 else 0.0
        self.loop = loop
        self._fh: Optional[BinaryIO] = None

    def open(self) -> None:
        self._fh = open(self.path, "rb")
        logger.info("[replay] replaying %s", self.path)

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def read_payload(self) -> Optional[bytes]:
        fh = self._fh
        if fh is None:
            return b""
        chunk = fh.read(self.chunk_size)
        if not chunk and self.loop:
            fh.seek(0)
            chunk = fh.read(self.chunk_size)
        if self.interval:
            time.sleep(self.interval)
        return chunk
