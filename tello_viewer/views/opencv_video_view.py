import logging
import sys
import time
import ctypes
from typing import Callable, Optional

import cv2

from tello_viewer.control.key_bindings import Action, action_for_key
from tello_viewer.control.key_events import KeyHoldTracker
from tello_viewer.models.errors import SurfaceError
from tello_viewer.services.flight_controller import FlightController
from tello_viewer.services.frame_relay import SlotRelay
from tello_viewer.views.base_video_view import BaseVideoView
from tello_viewer.views.display_surface import DisplaySurface, opencv_presenter

logger = logging.getLogger(__name__)

ESC = 27


class OpenCVVideoView(BaseVideoView):
    """
    Fixed-rate OpenCV window: every tick it handles keys, grabs the newest
    frame if one is ready, and redraws, whether or not video is flowing.
    """

    def __init__(
        self,
        relay: SlotRelay,
        controller: Optional[FlightController] = None,
        *,
        window_name: str = "TELLO drone",
        width: int = 960,
        height: int = 720,
        fps: float = 20.0,
        surface: Optional[DisplaySurface] = None,
        key_source: Optional[Callable[[], int]] = None,
        key_tracker: Optional[KeyHoldTracker] = None,
    ):
        super().__init__(relay, controller)
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.window_name = window_name
        self.tick_interval = 1.0 / fps
        self._owns_window = surface is None
        self.surface = surface or DisplaySurface(width, height, opencv_presenter(window_name))
        self._poll_key = key_source or (lambda: cv2.waitKey(1))
        self.keys = key_tracker or KeyHoldTracker()
        self.ticks = 0

    # ------------------------------------------------------------------ #
    # private helper – poke HighGUI so waitKey() returns immediately
    # ------------------------------------------------------------------ #
    def _wakeup_highgui(self):
        if sys.platform.startswith("win"):
            hwnd = ctypes.windll.user32.FindWindowW(None, self.window_name)
            if hwnd:
                ctypes.windll.user32.PostMessageW(hwnd, 0, 0, 0)

    def _window_closed(self) -> bool:
        if not self._owns_window:
            return False
        return cv2.getWindowProperty(self.window_name, cv2.WND_PROP_VISIBLE) < 1

    # ------------------------------------------------------------------ #
    def tick(self) -> bool:
        """One render-loop iteration. Returns False when the user quits."""
        # 1. input
        code = self._poll_key()
        if code is not None and code >= 0:
            code &= 0xFF
            if code == ESC:
                return False
            action = action_for_key(chr(code))
            if action is Action.QUIT:
                return False
            if action is not None:
                self._dispatch(self.keys.press(action))
        self._dispatch(self.keys.poll())

        # 2-3. newest frame, if the decoder left one
        frame = self.relay.try_take()
        if frame is not None:
            self.surface.write(frame)

        # 4. present, new frame or not
        self.surface.present()
        self.ticks += 1
        return True

    def _dispatch(self, events) -> None:
        if self.controller is None:
            return
        for event in events:
            self.controller.handle(event)

    def run(self):
        """Start the OpenCV display loop"""
        if self._owns_window:
            try:
                cv2.namedWindow(self.window_name, cv2.WINDOW_NORMAL)
            except cv2.error as e:
                raise SurfaceError(f"cannot open window '{self.window_name}': {e}") from e

        fps_timer = time.monotonic()
        shown_at_timer = 0
        next_tick = time.monotonic()
        try:
            while self.running:
                try:
                    if not self.tick() or self._window_closed():
                        break
                except cv2.error as e:
                    logger.error("[display] render surface failed: %s", e)
                    break

                shown = self.surface.frames_written
                if shown - shown_at_timer >= 60:
                    now = time.monotonic()
                    logger.info("[display] ~%4.1f fps", (shown - shown_at_timer) / (now - fps_timer))
                    fps_timer, shown_at_timer = now, shown

                next_tick += self.tick_interval
                delay = next_tick - time.monotonic()
                if delay > 0:
                    time.sleep(delay)
                else:
                    next_tick = time.monotonic()
        finally:
            self.running = False
            self._dispatch(self.keys.release_all())
            if self._owns_window:
                cv2.destroyAllWindows()

    def stop(self):
        """Stop the display loop"""
        super().stop()
        self._wakeup_highgui()
