from abc import ABC, abstractmethod


class BaseVideoView(ABC):
    """Base abstract class for video display views"""

    def __init__(self, relay, controller=None):
        self.relay = relay
        self.controller = controller
        self.running = True

    @abstractmethod
    def run(self):
        """Start the view's main loop"""
        pass

    def stop(self):
        """Ask the main loop to return"""
        self.running = False
