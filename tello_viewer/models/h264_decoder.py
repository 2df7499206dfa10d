import logging

import av
import numpy as np

from tello_viewer.models.base_video_model import BaseFrameDecoder
from tello_viewer.models.decode_result import DecodeError, DecodeResult, Frame, NoFrame
from tello_viewer.models.video_frame import CompressedPacket, DecodedFrame

logger = logging.getLogger(__name__)


class H264Decoder(BaseFrameDecoder):
    """
    PyAV wrapper for the drone's raw Annex-B H.264 stream.

    • UDP datagrams are arbitrary slices of the byte stream, so every
      payload goes through the codec parser first.
    • If one payload completes several pictures, only the newest one is
      returned.
    """

    def __init__(self, codec_name: str = "h264") -> None:
        self.codec = av.CodecContext.create(codec_name, "r")
        # frame threading holds pictures back by several frames
        self.codec.thread_type = "SLICE"
        self._logged_once = False
        self._last_seq = 0

    # ──────────────────────────────────────────────────────────
    # BaseFrameDecoder interface
    # ──────────────────────────────────────────────────────────
    def decode(self, packet: CompressedPacket) -> DecodeResult:
        self._last_seq = packet.seq
        try:
            parsed = self.codec.parse(packet.data)
            latest = None
            for av_packet in parsed:
                for av_frame in self.codec.decode(av_packet):
                    latest = av_frame
        except (av.error.FFmpegError, ValueError) as e:
            return DecodeError(str(e))

        if latest is None:
            return NoFrame()
        return self._wrap(latest, packet.seq)

    def flush(self) -> DecodeResult:
        """Decode the access unit still held by the parser, then drain the codec."""
        latest = None
        try:
            for av_packet in self.codec.parse(None):
                for av_frame in self.codec.decode(av_packet):
                    latest = av_frame
            for av_frame in self.codec.decode(None):
                latest = av_frame
        except (av.error.FFmpegError, ValueError) as e:
            return DecodeError(str(e))
        if latest is None:
            return NoFrame()
        return self._wrap(latest, self._last_seq)

    # ──────────────────────────────────────────────────────────
    # helpers
    # ──────────────────────────────────────────────────────────
    def _wrap(self, av_frame, seq: int) -> DecodeResult:
        try:
            yuv = self._to_i420(av_frame)
            frame = DecodedFrame(seq, av_frame.width, av_frame.height, yuv)
        except ValueError as e:
            return DecodeError(f"frame conversion failed: {e}")

        if not self._logged_once:
            logger.info("[decode] H.264 stream is %dx%d (%s)",
                        frame.width, frame.height, av_frame.format.name)
            self._logged_once = True
        return Frame(frame)

    @staticmethod
    def _to_i420(av_frame) -> np.ndarray:
        if av_frame.format.name != "yuv420p":
            av_frame = av_frame.reformat(format="yuv420p")
        return av_frame.to_ndarray()
