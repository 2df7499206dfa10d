from fastapi.testclient import TestClient

from tello_viewer.services.flight_controller import FlightController
from tello_viewer.services.frame_relay import StreamRelay
from tello_viewer.web_server import _parse_message, create_app

from conftest import make_frame


def test_status_reports_pipeline(session):
    relay = StreamRelay()
    app = create_app(relay, FlightController(session), status=lambda: {"decode": {"frames": 3}})

    with TestClient(app) as client:
        body = client.get("/status").json()

    assert body["decode"] == {"frames": 3}
    assert body["relay"]["published"] == 0
    assert body["command_failures"] == 0


def test_websocket_key_events_reach_drone(session, debug_protocol):
    app = create_app(StreamRelay(), FlightController(session, move_distance=25))

    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "key", "action": "move_right", "pressed": True})
            assert ws.receive_json() == {"ok": True}
            ws.send_json({"type": "key", "action": "move_right", "pressed": False})
            assert ws.receive_json() == {"ok": True}
            ws.send_json({"type": "command", "command": "land"})
            assert ws.receive_json() == {"ok": True}
            ws.send_json({"type": "command", "command": "flip"})
            assert ws.receive_json()["ok"] is False

    assert debug_protocol.sent == ["right 25", "stop", "land"]


def test_frames_reach_hub_as_jpeg():
    relay = StreamRelay()
    app = create_app(relay)

    with TestClient(app):
        relay.publish(make_frame(1, width=16, height=16))
        relay.close()
        app.state.pump_done.wait(timeout=2.0)

    assert app.state.frame_hub.latest.startswith(b"\xff\xd8")


def test_parse_message():
    assert _parse_message("nope") is None
    assert _parse_message({"type": "key", "action": "barrel_roll"}) is None
    event = _parse_message({"type": "key", "action": "take_off"})
    assert event.pressed is True


def test_pressed_must_be_a_boolean():
    assert _parse_message({"type": "key", "action": "move_up", "pressed": "false"}) is None
    assert _parse_message({"type": "key", "action": "move_up", "pressed": 0}) is None
    assert _parse_message({"type": "key", "action": "move_up", "pressed": False}).pressed is False
