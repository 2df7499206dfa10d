import logging

from tello_viewer.control.key_bindings import Action, action_for_key
from tello_viewer.control.key_events import KeyEvent, KeyHoldTracker
from tello_viewer.services.flight_controller import FlightController


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_forward_hold_then_release_sends_move_then_stop(session, debug_protocol):
    clock = Clock()
    keys = KeyHoldTracker(clock=clock)
    controller = FlightController(session, move_distance=20)
    controller.start()
    try:
        for event in keys.press(Action.MOVE_FORWARD):
            controller.handle(event)
        # frames keep rendering while the key is held; nothing else is sent
        for _ in range(7):
            clock.now += 0.05
            for event in keys.poll():
                controller.handle(event)
        clock.now = 0.5
        for event in keys.poll():
            controller.handle(event)
        controller.wait_idle()
    finally:
        controller.stop()

    assert debug_protocol.sent == ["forward 20", "stop"]


def test_release_of_non_movement_key_sends_nothing(session, debug_protocol):
    controller = FlightController(session)

    controller.handle(KeyEvent(Action.TAKE_OFF, True))
    controller.handle(KeyEvent(Action.TAKE_OFF, False))
    controller.handle(KeyEvent(Action.QUIT, True))

    assert debug_protocol.sent == ["takeoff"]


def test_commands_keep_their_order(session, debug_protocol):
    controller = FlightController(session, move_distance=30)
    controller.start()
    for key in "kwasd,.l":
        controller.handle(KeyEvent(action_for_key(key), True))
    controller.wait_idle()
    controller.stop()

    assert debug_protocol.sent == [
        "takeoff", "forward 30", "left 30", "back 30", "right 30", "up 30", "down 30", "land",
    ]


def test_failed_command_is_logged_and_not_raised(session, debug_protocol, caplog):
    debug_protocol.fail_commands.add("land")
    controller = FlightController(session)

    with caplog.at_level(logging.WARNING):
        controller.handle(KeyEvent(Action.LAND, True), wait=True)
        controller.handle(KeyEvent(Action.TAKE_OFF, True), wait=True)

    assert controller.failures == 1
    assert "land failed" in caplog.text
    assert debug_protocol.sent == ["land", "takeoff"]


def test_unbound_keys():
    assert action_for_key("x") is None
    assert action_for_key("") is None
    assert action_for_key("W") is Action.MOVE_FORWARD


def test_hold_tracker_emits_single_down_for_repeats():
    clock = Clock()
    keys = KeyHoldTracker(threshold=0.4, clock=clock)

    assert keys.press(Action.MOVE_LEFT) == [KeyEvent(Action.MOVE_LEFT, True)]
    clock.now = 0.25
    assert keys.press(Action.MOVE_LEFT) == []
    clock.now = 0.5
    assert keys.poll() == []
    clock.now = 0.75
    assert keys.poll() == [KeyEvent(Action.MOVE_LEFT, False)]
    assert keys.held == set()


def test_release_all():
    keys = KeyHoldTracker(clock=lambda: 0.0)
    keys.press(Action.MOVE_UP)
    keys.press(Action.TAKE_OFF)

    released = keys.release_all()

    assert {e.action for e in released} == {Action.MOVE_UP, Action.TAKE_OFF}
    assert all(not e.pressed for e in released)
