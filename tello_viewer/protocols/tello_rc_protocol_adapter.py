import logging
import socket
import threading

from tello_viewer.models.errors import CommandError
from tello_viewer.protocols.base_protocol_adapter import BaseProtocolAdapter

logger = logging.getLogger(__name__)


class TelloRCProtocolAdapter(BaseProtocolAdapter):
    """Tello SDK text protocol: one ASCII command per datagram, one reply back"""

    def __init__(self, drone_ip="192.168.10.1", control_port=8889, local_port=0):
        self.drone_ip = drone_ip
        self.control_port = control_port
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("", local_port))
        self._lock = threading.Lock()
        self.debug_packets = False
        self.packet_counter = 0

    def send_command(self, command, timeout=7.0):
        """Send a command and block until the drone replies or timeout passes"""
        with self._lock:
            self._drain_stale_replies()
            self.sock.sendto(command.encode("ascii"), (self.drone_ip, self.control_port))
            self.packet_counter += 1
            if self.debug_packets:
                logger.info("[tello] #%d -> %s", self.packet_counter, command)

            self.sock.settimeout(timeout)
            try:
                while True:
                    data, addr = self.sock.recvfrom(1024)
                    if addr[0] == self.drone_ip:
                        break
            except socket.timeout:
                raise CommandError(command, f"no reply within {timeout:.1f}s") from None

        reply = data.decode("utf-8", errors="replace").strip()
        if self.debug_packets:
            logger.info("[tello] #%d <- %s", self.packet_counter, reply)
        if reply.lower().startswith("error"):
            raise CommandError(command, reply)
        return reply

    def close(self):
        self.sock.close()

    def toggle_debug(self):
        """Toggle debug packet logging"""
        self.debug_packets = not self.debug_packets
        return self.debug_packets

    def _drain_stale_replies(self):
        """Throw away replies to earlier commands that timed out"""
        self.sock.setblocking(False)
        try:
            while True:
                self.sock.recvfrom(1024)
        except (BlockingIOError, socket.timeout):
            pass
        finally:
            self.sock.setblocking(True)
