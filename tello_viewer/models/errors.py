class TelloError(Exception):
    """Base class for failures talking to the drone."""


class CommandError(TelloError):
    """A command timed out or the drone answered with an error."""

    def __init__(self, command: str, reason: str):
        super().__init__(f"'{command}' failed: {reason}")
        self.command = command
        self.reason = reason


class SessionError(TelloError):
    """The session could not be established or was misused."""


class PacketSourceClosed(Exception):
    """The packet source is permanently closed and fully drained."""


class SurfaceError(Exception):
    """The display surface can no longer be drawn to."""
