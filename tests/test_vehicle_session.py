import pytest

from tello_viewer.models.errors import CommandError, SessionError
from tello_viewer.protocols.debug_rc_protocol_adapter import DebugRcProtocolAdapter
from tello_viewer.services.vehicle_session import TelloSession

from conftest import ListPacketSource


def test_connect_enters_sdk_mode(session, debug_protocol):
    session.connect(attempts=1)

    assert session.connected
    assert debug_protocol.sent == ["command"]


def test_connect_gives_up(debug_protocol):
    debug_protocol.fail_commands.add("command")
    session = TelloSession(debug_protocol)

    with pytest.raises(SessionError):
        session.connect(attempts=3, interval=0)
    assert debug_protocol.sent == ["command"] * 3


def test_move_commands_format_distance(session, debug_protocol):
    session.move_forward(20)
    session.move_back(50)
    session.move_up(500)
    session.send("setbitrate 1")

    assert debug_protocol.sent == ["forward 20", "back 50", "up 500", "setbitrate 1"]


@pytest.mark.parametrize("distance", [0, 19, 501])
def test_move_distance_out_of_range(session, distance):
    with pytest.raises(ValueError):
        session.move_left(distance)


def test_error_reply_raises(session, debug_protocol):
    debug_protocol.fail_commands.add("takeoff")

    with pytest.raises(CommandError) as info:
        session.take_off()
    assert info.value.command == "takeoff"


def test_packet_source_only_once():
    source = ListPacketSource([b"key"])
    session = TelloSession(DebugRcProtocolAdapter(), source)

    assert session.open_packet_source() is source
    assert source.opened
    with pytest.raises(SessionError):
        session.open_packet_source()
    session.close()
    assert source.closed


def test_packet_source_missing(session):
    with pytest.raises(SessionError):
        session.open_packet_source()


def test_close_turns_video_off(debug_protocol):
    session = TelloSession(debug_protocol, ListPacketSource([]))
    session.setup(["downvision 1"])
    session.start_video()

    session.close()

    assert debug_protocol.sent == ["downvision 1", "streamon", "streamoff"]
    assert not session.video_on
