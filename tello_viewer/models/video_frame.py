import time
from dataclasses import dataclass, field
from typing import Optional

import cv2
import numpy as np


@dataclass(frozen=True)
class CompressedPacket:
    """One datagram of compressed video as it arrived from the drone"""
    seq: int
    data: bytes
    timestamp: float = field(default_factory=time.monotonic)

    @property
    def size(self) -> int:
        return len(self.data)

    def __repr__(self):
        return f"CompressedPacket(seq={self.seq}, size={self.size})"


class DecodedFrame:
    """
    A decoded picture in planar I420 layout.

    ``yuv`` is one contiguous ``uint8`` array of shape
    ``(height * 3 // 2, width)``: the luma plane followed by the
    quarter-size U and V planes, which is what both FFmpeg's ``yuv420p``
    and OpenCV's ``COLOR_YUV2*_I420`` conversions expect.
    """

    def __init__(self, seq: int, width: int, height: int, yuv: np.ndarray,
                 timestamp: Optional[float] = None):
        if width % 2 or height % 2:
            raise ValueError(f"I420 needs even dimensions, got {width}x{height}")
        expected = (height * 3 // 2, width)
        if yuv.shape != expected:
            raise ValueError(f"Expected I420 buffer of shape {expected}, got {yuv.shape}")
        self.seq = seq
        self.width = width
        self.height = height
        self.yuv = np.ascontiguousarray(yuv, dtype=np.uint8)
        self.timestamp = timestamp or time.monotonic()

    # ────────── planes ────────── #
    @property
    def y(self) -> np.ndarray:
        return self.yuv[: self.height]

    @property
    def u(self) -> np.ndarray:
        quarter = (self.width // 2) * (self.height // 2)
        flat = self.yuv[self.height:].reshape(-1)
        return flat[:quarter].reshape(self.height // 2, self.width // 2)

    @property
    def v(self) -> np.ndarray:
        quarter = (self.width // 2) * (self.height // 2)
        flat = self.yuv[self.height:].reshape(-1)
        return flat[quarter:].reshape(self.height // 2, self.width // 2)

    # ────────── conversion ────────── #
    def to_bgr(self) -> np.ndarray:
        return cv2.cvtColor(self.yuv, cv2.COLOR_YUV2BGR_I420)

    def to_rgb(self) -> np.ndarray:
        return cv2.cvtColor(self.yuv, cv2.COLOR_YUV2RGB_I420)

    def write_bgr(self, dst: np.ndarray) -> None:
        """Convert straight into a preallocated ``(height, width, 3)`` buffer."""
        if dst.shape != (self.height, self.width, 3):
            raise ValueError(
                f"Destination is {dst.shape}, frame is {self.height}x{self.width}"
            )
        cv2.cvtColor(self.yuv, cv2.COLOR_YUV2BGR_I420, dst=dst)

    @classmethod
    def from_planes(cls, seq: int, y: np.ndarray, u: np.ndarray, v: np.ndarray) -> "DecodedFrame":
        height, width = y.shape
        yuv = np.concatenate([y.reshape(-1), u.reshape(-1), v.reshape(-1)])
        return cls(seq, width, height, yuv.reshape(height * 3 // 2, width))

    def __repr__(self):
        return f"DecodedFrame(seq={self.seq}, size={self.width}x{self.height})"
