import logging
import queue
import threading
from typing import Optional

from tello_viewer.control.key_bindings import COMMANDS, MOVEMENT_ACTIONS, Action
from tello_viewer.control.key_events import KeyEvent
from tello_viewer.models.errors import TelloError
from tello_viewer.services.vehicle_session import TelloSession

logger = logging.getLogger(__name__)

_SHUTDOWN = object()


class FlightController:
    """
    Turns key events into drone commands.

    Commands run one at a time, in order, on a background thread so a slow
    reply (Tello moves only answer once the move is done) never stalls the
    render loop. Failures are logged and otherwise ignored.
    """

    def __init__(self, session: TelloSession, move_distance: int = 20):
        self.session = session
        self.move_distance = move_distance
        self.running = False
        self.failures = 0
        self._commands: "queue.Queue" = queue.Queue()
        self.command_thread: Optional[threading.Thread] = None

    def start(self):
        """Start the command thread"""
        if self.command_thread and self.command_thread.is_alive():
            return
        self.running = True
        self.command_thread = threading.Thread(
            target=self._command_loop, name="FlightCommands", daemon=True
        )
        self.command_thread.start()

    def stop(self):
        """Stop the command thread after the queued commands went out"""
        self.running = False
        self._commands.put(_SHUTDOWN)
        if self.command_thread:
            self.command_thread.join(timeout=2.0)

    # ────────── dispatch ────────── #
    def handle(self, event: KeyEvent, wait: bool = False) -> None:
        """
        Key down issues the bound command; releasing a movement key issues
        an explicit stop so the drone does not keep drifting.
        """
        if event.action is Action.QUIT:
            return
        if event.pressed:
            action = event.action
        elif event.action in MOVEMENT_ACTIONS:
            action = Action.STOP
        else:
            return
        self.dispatch(action, wait=wait)

    def dispatch(self, action: Action, wait: bool = False) -> None:
        if action not in COMMANDS:
            raise ValueError(f"No command bound to {action}")
        if wait or not self.running:
            self._execute(action)
        else:
            self._commands.put(action)

    def wait_idle(self) -> None:
        """Block until every queued command has been sent."""
        self._commands.join()

    # ────────── worker ────────── #
    def _command_loop(self):
        while True:
            action = self._commands.get()
            try:
                if action is _SHUTDOWN:
                    break
                self._execute(action)
            finally:
                self._commands.task_done()

    def _execute(self, action: Action) -> None:
        try:
            reply = COMMANDS[action](self.session, self.move_distance)
        except (TelloError, OSError, ValueError) as e:
            self.failures += 1
            logger.warning("[control] %s failed: %s", action.value, e)
            return
        logger.info("[control] %s -> %s", action.value, reply)
