import numpy as np
import pytest

from tello_viewer.models.base_video_model import BaseFrameDecoder
from tello_viewer.models.decode_result import DecodeError, Frame, NoFrame
from tello_viewer.models.video_frame import DecodedFrame
from tello_viewer.protocols.base_video_protocol import BaseVideoProtocolAdapter
from tello_viewer.protocols.debug_rc_protocol_adapter import DebugRcProtocolAdapter
from tello_viewer.services.vehicle_session import TelloSession


def make_frame(seq: int, width: int = 8, height: int = 6, luma: int = 128) -> DecodedFrame:
    yuv = np.full((height * 3 // 2, width), 128, np.uint8)
    yuv[:height] = luma
    return DecodedFrame(seq, width, height, yuv)


class ListPacketSource(BaseVideoProtocolAdapter):
    """Packet source that plays back a fixed list of payloads, then closes."""

    def __init__(self, payloads):
        super().__init__(max_queue_size=1024)
        self._payloads = list(payloads)
        self.opened = False
        self.closed = False

    def open(self):
        self.opened = True

    def close(self):
        self.closed = True

    def read_payload(self):
        if not self._payloads:
            return b""
        return self._payloads.pop(0)


class ScriptedDecoder(BaseFrameDecoder):
    """
    Keyword decoder: b"key..." starts the stream, b"delta..." needs a key
    first, b"corrupt..." is rejected, anything else yields no frame.
    """

    def __init__(self):
        self.seen_key = False
        self.calls = []

    def decode(self, packet):
        self.calls.append(packet.seq)
        if packet.data.startswith(b"corrupt"):
            return DecodeError("bad slice header")
        if packet.data.startswith(b"key"):
            self.seen_key = True
            return Frame(make_frame(packet.seq))
        if packet.data.startswith(b"delta") and self.seen_key:
            return Frame(make_frame(packet.seq))
        return NoFrame()


@pytest.fixture
def debug_protocol():
    return DebugRcProtocolAdapter()


@pytest.fixture
def session(debug_protocol):
    return TelloSession(debug_protocol)
