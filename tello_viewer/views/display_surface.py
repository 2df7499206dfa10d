import logging
from typing import Callable

import cv2
import numpy as np

from tello_viewer.models.video_frame import DecodedFrame

logger = logging.getLogger(__name__)

Presenter = Callable[[np.ndarray], None]


def make_placeholder(width: int, height: int, text: str = "No video frames received yet") -> np.ndarray:
    """Black image with a centred red warning."""
    img = np.zeros((height, width, 3), np.uint8)
    font, scale, th = cv2.FONT_HERSHEY_SIMPLEX, 0.6, 2
    (tw, th_), _ = cv2.getTextSize(text, font, scale, th)
    x = (width - tw) // 2
    y = (height + th_) // 2
    cv2.putText(img, text, (x, y), font, scale, (0, 0, 255), th)
    return img


class DisplaySurface:
    """
    BGR pixel buffer that the render loop draws into and presents.

    Presenting does not require a new frame: the buffer keeps the last
    picture (or the placeholder) until something overwrites it.
    """

    def __init__(self, width: int, height: int, presenter: Presenter):
        self.presenter = presenter
        self.pixels = make_placeholder(width, height)
        self.dirty = True
        self.frames_written = 0
        self.presents = 0

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def write(self, frame: DecodedFrame) -> None:
        if (frame.width, frame.height) != (self.width, self.height):
            logger.info("[display] surface resized %dx%d -> %dx%d",
                        self.width, self.height, frame.width, frame.height)
            self.pixels = np.empty((frame.height, frame.width, 3), np.uint8)
        frame.write_bgr(self.pixels)
        self.frames_written += 1
        self.dirty = True

    def present(self) -> None:
        self.presenter(self.pixels)
        self.presents += 1
        self.dirty = False


def opencv_presenter(window_name: str) -> Presenter:
    def present(pixels: np.ndarray) -> None:
        cv2.imshow(window_name, pixels)
    return present
