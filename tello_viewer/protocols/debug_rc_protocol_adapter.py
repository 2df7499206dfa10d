import logging

from tello_viewer.models.errors import CommandError
from tello_viewer.protocols.base_protocol_adapter import BaseProtocolAdapter

log = logging.getLogger(__name__)


class DebugRcProtocolAdapter(BaseProtocolAdapter):
    """Dummy command transport: records and acknowledges every command."""

    def __init__(self, fail_commands=()):
        self.sent = []
        self.fail_commands = set(fail_commands)
        self.debug_packets = False
        log.info("Debug RC protocol adapter initialized.")

    def send_command(self, command, timeout=7.0):
        self.sent.append(command)
        (log.info if self.debug_packets else log.debug)(f"Debug: send_command({command})")
        if command in self.fail_commands:
            raise CommandError(command, "error (debug)")
        return "ok"

    def close(self):
        pass

    def toggle_debug(self):
        self.debug_packets = not self.debug_packets
        return self.debug_packets
