from enum import Enum
from typing import Callable, Dict, FrozenSet

from tello_viewer.services.vehicle_session import TelloSession


class Action(Enum):
    TAKE_OFF = "take_off"
    LAND = "land"
    STOP = "stop"
    MOVE_FORWARD = "move_forward"
    MOVE_BACK = "move_back"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    QUIT = "quit"


KEY_BINDINGS: Dict[str, Action] = {
    "q": Action.QUIT,
    "k": Action.TAKE_OFF,
    "l": Action.LAND,
    "w": Action.MOVE_FORWARD,
    "s": Action.MOVE_BACK,
    "a": Action.MOVE_LEFT,
    "d": Action.MOVE_RIGHT,
    ",": Action.MOVE_UP,
    ".": Action.MOVE_DOWN,
    " ": Action.STOP,
}

MOVEMENT_ACTIONS: FrozenSet[Action] = frozenset({
    Action.MOVE_FORWARD,
    Action.MOVE_BACK,
    Action.MOVE_LEFT,
    Action.MOVE_RIGHT,
    Action.MOVE_UP,
    Action.MOVE_DOWN,
})

# action -> fn(session, distance_cm) -> reply
COMMANDS: Dict[Action, Callable[[TelloSession, int], str]] = {
    Action.TAKE_OFF:     lambda s, _d: s.take_off(),
    Action.LAND:         lambda s, _d: s.land(),
    Action.STOP:         lambda s, _d: s.stop(),
    Action.MOVE_FORWARD: lambda s, d: s.move_forward(d),
    Action.MOVE_BACK:    lambda s, d: s.move_back(d),
    Action.MOVE_LEFT:    lambda s, d: s.move_left(d),
    Action.MOVE_RIGHT:   lambda s, d: s.move_right(d),
    Action.MOVE_UP:      lambda s, d: s.move_up(d),
    Action.MOVE_DOWN:    lambda s, d: s.move_down(d),
}


def action_for_key(key: str):
    """Look up a key (case-insensitive). Returns None for unbound keys."""
    return KEY_BINDINGS.get(key.lower()) if key else None
