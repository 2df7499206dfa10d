from abc import ABC, abstractmethod


class BaseProtocolAdapter(ABC):
    """Base abstract class for drone command transports"""

    @abstractmethod
    def send_command(self, command: str, timeout: float) -> str:
        """Send one text command and return the drone's reply"""
        pass

    @abstractmethod
    def close(self):
        """Release the transport"""
        pass

    @abstractmethod
    def toggle_debug(self):
        """Toggle debug packet logging"""
        pass
