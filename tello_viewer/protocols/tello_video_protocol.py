import logging
import os
import socket
import threading
import time
from typing import BinaryIO, Final, Optional

from tello_viewer.protocols.base_video_protocol import BaseVideoProtocolAdapter

logger = logging.getLogger(__name__)


class TelloVideoProtocolAdapter(BaseVideoProtocolAdapter):
    """
    Receives the Tello's raw H.264 stream.

    After ``streamon`` the drone pushes Annex-B byte stream slices as UDP
    datagrams to port 11111 on the connected host. Datagrams are passed on
    unchanged; the decoder's parser finds the NAL boundaries.
    """

    DEFAULT_VIDEO_PORT: Final = 11111
    RECV_BUFFER: Final = 2048
    SOCKET_TIMEOUT: Final = 1.0

    def __init__(
        self,
        video_port: int = DEFAULT_VIDEO_PORT,
        *,
        bind_ip: str = "0.0.0.0",
        dump_packets: bool = False,
        dump_dir: Optional[str] = None,
        max_queue_size: int = 512,
    ):
        super().__init__(max_queue_size=max_queue_size)
        self.video_port = video_port
        self.bind_ip = bind_ip
        self._sock: Optional[socket.socket] = None

        self.dump_packets = dump_packets
        self.dump_dir = dump_dir or f"dumps_{int(time.time())}"
        self._pktlog: Optional[BinaryIO] = None
        self._dump_lock = threading.Lock()

    # ────────── transport ────────── #
    def open(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self.bind_ip, self.video_port))
        sock.settimeout(self.SOCKET_TIMEOUT)
        self._sock = sock
        logger.info("[tello-video] listening on %s:%d", self.bind_ip, sock.getsockname()[1])

        if self.dump_packets:
            os.makedirs(self.dump_dir, exist_ok=True)
            ts = int(time.time() * 1000)
            path = os.path.join(self.dump_dir, f"packets_{ts}.h264")
            self._pktlog = open(path, "wb")
            logger.info("[tello-video] dumping raw stream to %s", path)

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
        with self._dump_lock:
            if self._pktlog is not None:
                self._pktlog.close()
                self._pktlog = None

    def read_payload(self) -> Optional[bytes]:
        sock = self._sock
        if sock is None:
            return b""
        try:
            payload = sock.recv(self.RECV_BUFFER)
        except socket.timeout:
            return None
        with self._dump_lock:
            if self._pktlog is not None:
                self._pktlog.write(payload)
        return payload

    @property
    def bound_port(self) -> Optional[int]:
        sock = self._sock
        return sock.getsockname()[1] if sock is not None else None
