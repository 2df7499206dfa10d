from dataclasses import dataclass
from typing import Union

from tello_viewer.models.video_frame import DecodedFrame


@dataclass(frozen=True)
class Frame:
    """A packet completed a displayable picture."""
    frame: DecodedFrame


@dataclass(frozen=True)
class NoFrame:
    """Valid input, nothing to show yet (warm-up, waiting for a keyframe)."""


@dataclass(frozen=True)
class DecodeError:
    """The packet could not be decoded; the stream carries on."""
    reason: str


DecodeResult = Union[Frame, NoFrame, DecodeError]
