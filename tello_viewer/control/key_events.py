import time
from dataclasses import dataclass
from typing import Callable, Dict, List

from tello_viewer.control.key_bindings import Action


@dataclass(frozen=True)
class KeyEvent:
    action: Action
    pressed: bool


class KeyHoldTracker:
    """
    Turns a stream of key presses into key-down / key-up events.

    OpenCV's ``waitKey`` only reports presses (plus auto-repeat while a
    key is held), so a key counts as held as long as repeats keep arriving
    within ``PRESS_THRESHOLD`` seconds of each other.
    """

    PRESS_THRESHOLD = 0.4

    def __init__(self, threshold: float = PRESS_THRESHOLD,
                 clock: Callable[[], float] = time.monotonic):
        self.threshold = threshold
        self._clock = clock
        self._last_seen: Dict[Action, float] = {}

    def press(self, action: Action) -> List[KeyEvent]:
        now = self._clock()
        events = []
        if action not in self._last_seen:
            events.append(KeyEvent(action, True))
        self._last_seen[action] = now
        return events

    def poll(self) -> List[KeyEvent]:
        """Release every key whose repeats have stopped."""
        now = self._clock()
        released = [a for a, ts in self._last_seen.items() if now - ts >= self.threshold]
        for action in released:
            del self._last_seen[action]
        return [KeyEvent(action, False) for action in released]

    def release_all(self) -> List[KeyEvent]:
        events = [KeyEvent(action, False) for action in self._last_seen]
        self._last_seen.clear()
        return events

    @property
    def held(self):
        return set(self._last_seen)
