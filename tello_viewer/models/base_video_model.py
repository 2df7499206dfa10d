from abc import ABC, abstractmethod

from tello_viewer.models.decode_result import DecodeResult, NoFrame
from tello_viewer.models.video_frame import CompressedPacket


class BaseFrameDecoder(ABC):
    """
    Stateful, strictly sequential interface that turns compressed packets
    into decoded frames.

    Implementations keep codec state (reference frames, parameter sets)
    between calls, so a decoder instance must only ever be fed from one
    thread, in arrival order.
    """

    @abstractmethod
    def decode(self, packet: CompressedPacket) -> DecodeResult:
        """
        Feed one packet into the decoder.

        Returns
        -------
        DecodeResult
            • Frame(frame) when a picture is complete
            • NoFrame() if more data is required
            • DecodeError(reason) if the packet was rejected
        """
        raise NotImplementedError

    def flush(self) -> DecodeResult:
        """Drain whatever the codec still buffers at end of stream."""
        return NoFrame()
