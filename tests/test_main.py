from tello_viewer.main import build_session, main, parse_args
from tello_viewer.config import ViewerConfig
from tello_viewer.protocols.debug_rc_protocol_adapter import DebugRcProtocolAdapter
from tello_viewer.protocols.file_video_protocol import FileVideoProtocolAdapter


def test_unset_flags_stay_none():
    args = vars(parse_args([]))

    assert all(value is None for value in args.values())


def test_flags_map_onto_config():
    args = parse_args(["--ui", "web", "--fps", "25", "--setup-command", "downvision 1",
                       "--setup-command", "setbitrate 1"])

    cfg = ViewerConfig().override(**vars(args))

    assert cfg.ui == "web"
    assert cfg.render_fps == 25.0
    assert cfg.setup_commands == ["downvision 1", "setbitrate 1"]


def test_debug_session_replays_file(tmp_path):
    capture = tmp_path / "capture.h264"
    capture.write_bytes(b"\x00" * 10)
    cfg = ViewerConfig().override(drone_type="debug", replay_file=str(capture))

    session = build_session(cfg)

    assert isinstance(session.protocol, DebugRcProtocolAdapter)
    assert isinstance(session.video_protocol, FileVideoProtocolAdapter)


def test_bad_configuration_exits_with_error(monkeypatch):
    monkeypatch.delenv("REPLAY_FILE", raising=False)

    assert main(["--drone-type", "debug"]) == 1


def test_surface_failure_exits_with_error(monkeypatch):
    from tello_viewer import main as main_module
    from tello_viewer.models.errors import SurfaceError

    def fail(cfg):
        raise SurfaceError("no display")

    monkeypatch.delenv("DRONE_TYPE", raising=False)
    monkeypatch.setattr(main_module, "run", fail)

    assert main([]) == 1


def test_debug_packets_flag_turns_on_command_logging(tmp_path):
    capture = tmp_path / "capture.h264"
    capture.write_bytes(b"")
    args = parse_args(["--drone-type", "debug", "--replay", str(capture), "--debug-packets"])

    session = build_session(ViewerConfig().override(**vars(args)))

    assert session.protocol.debug_packets is True


def test_shutdown_stops_video_before_commands(tmp_path, monkeypatch):
    import pytest
    pytest.importorskip("av")
    from tello_viewer import main as main_module
    from tello_viewer.services.flight_controller import FlightController

    capture = tmp_path / "capture.h264"
    capture.write_bytes(b"\x00" * 10)
    cfg = ViewerConfig().override(drone_type="debug", replay_file=str(capture))
    order = []
    video_stop = FileVideoProtocolAdapter.stop
    controller_stop = FlightController.stop

    def record_video_stop(self):
        order.append("video")
        video_stop(self)

    def record_controller_stop(self):
        order.append("controller")
        controller_stop(self)

    monkeypatch.setattr(main_module, "_show_window", lambda cfg, relay, controller: None)
    monkeypatch.setattr(FileVideoProtocolAdapter, "stop", record_video_stop)
    monkeypatch.setattr(FlightController, "stop", record_controller_stop)

    assert main_module.run(cfg) == 0
    assert order.index("video") < order.index("controller")
