import logging
import time
from typing import Iterable, Optional

from tello_viewer.models.errors import CommandError, SessionError
from tello_viewer.protocols.base_protocol_adapter import BaseProtocolAdapter
from tello_viewer.protocols.base_video_protocol import BaseVideoProtocolAdapter

logger = logging.getLogger(__name__)

MIN_DISTANCE_CM = 20
MAX_DISTANCE_CM = 500


class TelloSession:
    """
    Connected-state handle to one drone.

    Wraps a command transport with the SDK verbs and owns the video packet
    source, which can be handed out once per session.
    """

    def __init__(
        self,
        protocol: BaseProtocolAdapter,
        video_protocol: Optional[BaseVideoProtocolAdapter] = None,
        command_timeout: float = 7.0,
    ):
        self.protocol = protocol
        self.video_protocol = video_protocol
        self.command_timeout = command_timeout
        self.connected = False
        self.video_on = False
        self._source_taken = False

    # ────────── lifecycle ────────── #
    def connect(self, attempts: int = 10, interval: float = 1.0) -> None:
        """
        Put the drone into SDK mode, retrying while the WiFi link comes up.

        Raises SessionError if the drone never answers.
        """
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                self.protocol.send_command("command", timeout=self.command_timeout)
            except (CommandError, OSError) as e:
                last_error = e
                logger.info("[tello] waiting for drone (%d/%d): %s", attempt, attempts, e)
                time.sleep(interval)
                continue
            self.connected = True
            logger.info("[tello] SDK mode enabled")
            return
        raise SessionError(f"drone did not answer after {attempts} attempts: {last_error}")

    def setup(self, commands: Iterable[str]) -> None:
        for command in commands:
            reply = self.send(command)
            logger.info("[tello] %s -> %s", command, reply)

    def start_video(self) -> str:
        reply = self.send("streamon")
        self.video_on = True
        return reply

    def stop_video(self) -> str:
        reply = self.send("streamoff")
        self.video_on = False
        return reply

    def open_packet_source(self) -> BaseVideoProtocolAdapter:
        if self.video_protocol is None:
            raise SessionError("session was created without a video source")
        if self._source_taken:
            raise SessionError("packet source was already opened for this session")
        self._source_taken = True
        self.video_protocol.start()
        return self.video_protocol

    def close(self) -> None:
        if self.video_on:
            try:
                self.stop_video()
            except (CommandError, OSError) as e:
                logger.warning("[tello] streamoff failed: %s", e)
        if self.video_protocol is not None:
            self.video_protocol.stop()
        self.protocol.close()
        self.connected = False

    # ────────── commands ────────── #
    def send(self, command: str) -> str:
        """Send a raw SDK command."""
        return self.protocol.send_command(command, timeout=self.command_timeout)

    def take_off(self) -> str:
        return self.send("takeoff")

    def land(self) -> str:
        return self.send("land")

    def stop(self) -> str:
        """Hover in place, cancelling any movement in progress."""
        return self.send("stop")

    def move_forward(self, distance: int) -> str:
        return self._move("forward", distance)

    def move_back(self, distance: int) -> str:
        return self._move("back", distance)

    def move_left(self, distance: int) -> str:
        return self._move("left", distance)

    def move_right(self, distance: int) -> str:
        return self._move("right", distance)

    def move_up(self, distance: int) -> str:
        return self._move("up", distance)

    def move_down(self, distance: int) -> str:
        return self._move("down", distance)

    def _move(self, direction: str, distance: int) -> str:
        if not MIN_DISTANCE_CM <= distance <= MAX_DISTANCE_CM:
            raise ValueError(
                f"distance must be {MIN_DISTANCE_CM}..{MAX_DISTANCE_CM} cm, got {distance}"
            )
        return self.send(f"{direction} {int(distance)}")
