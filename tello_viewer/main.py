#!/usr/bin/env python3
import argparse
import logging
import os
import signal
import sys

from tello_viewer.config import DRONE_TYPES, UI_CHOICES, ViewerConfig
from tello_viewer.models.errors import SessionError, SurfaceError
from tello_viewer.services.flight_controller import FlightController
from tello_viewer.services.frame_relay import SlotRelay, StreamRelay
from tello_viewer.services.vehicle_session import TelloSession
from tello_viewer.services.video_receiver import VideoReceiverService

logger = logging.getLogger("tello_viewer")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Tello live video viewer and controller")
    parser.add_argument("--drone-type", choices=DRONE_TYPES,
                        help="tello (real drone) or debug (replay a capture, commands are logged)")
    parser.add_argument("--drone-ip", help="Drone address (default: 192.168.10.1)")
    parser.add_argument("--control-port", type=int, help="SDK command port (default: 8889)")
    parser.add_argument("--video-port", type=int, help="Local video port (default: 11111)")
    parser.add_argument("--ui", choices=UI_CHOICES,
                        help="opencv window (polled slot) or web MJPEG server (frame stream)")
    parser.add_argument("--fps", dest="render_fps", type=float,
                        help="Render ticks per second (default: 20)")
    parser.add_argument("--distance", dest="move_distance", type=int,
                        help="Distance per movement key press, cm (default: 20)")
    parser.add_argument("--setup-command", dest="setup_commands", action="append",
                        help="Extra SDK command sent before streamon, repeatable "
                             "(e.g. 'downvision 1', 'setbitrate 1')")
    parser.add_argument("--dump-packets", action="store_true", default=None,
                        help="Dump the raw H.264 stream to a file")
    parser.add_argument("--debug-packets", action="store_true", default=None,
                        help="Log every SDK command and reply")
    parser.add_argument("--dump-dir", help="Directory to store dumps (default: dumps_timestamp)")
    parser.add_argument("--replay", dest="replay_file",
                        help="Raw H.264 file to play instead of the drone's stream")
    parser.add_argument("--web-port", type=int, help="Port for --ui web (default: 8000)")
    return parser.parse_args(argv)


def build_session(cfg: ViewerConfig) -> TelloSession:
    if cfg.replay_file:
        from tello_viewer.protocols.file_video_protocol import FileVideoProtocolAdapter
        video = FileVideoProtocolAdapter(cfg.replay_file)
    else:
        from tello_viewer.protocols.tello_video_protocol import TelloVideoProtocolAdapter
        video = TelloVideoProtocolAdapter(
            cfg.video_port, dump_packets=cfg.dump_packets, dump_dir=cfg.dump_dir
        )

    if cfg.drone_type == "debug":
        from tello_viewer.protocols.debug_rc_protocol_adapter import DebugRcProtocolAdapter
        logger.info("[main] Using debug drone implementation.")
        protocol = DebugRcProtocolAdapter()
    else:
        from tello_viewer.protocols.tello_rc_protocol_adapter import TelloRCProtocolAdapter
        logger.info("[main] Using Tello drone at %s:%d", cfg.drone_ip, cfg.control_port)
        protocol = TelloRCProtocolAdapter(cfg.drone_ip, cfg.control_port)

    if cfg.debug_packets:
        protocol.toggle_debug()
        logger.info("[main] RC packet debug: ON")

    return TelloSession(protocol, video, command_timeout=cfg.command_timeout)


def run(cfg: ViewerConfig) -> int:
    from tello_viewer.models.h264_decoder import H264Decoder

    session = build_session(cfg)
    receiver = None
    controller = None
    try:
        session.connect(attempts=cfg.connect_attempts)
        session.setup(cfg.setup_commands)
        session.start_video()
        packet_source = session.open_packet_source()

        relay = StreamRelay(cfg.stream_queue_size) if cfg.ui == "web" else SlotRelay()
        receiver = VideoReceiverService(packet_source, H264Decoder(), relay)
        receiver.start()

        controller = FlightController(session, move_distance=cfg.move_distance)
        controller.start()

        if cfg.ui == "web":
            _serve_web(cfg, relay, controller, receiver)
        else:
            _show_window(cfg, relay, controller)
    finally:
        # Video side first, then commands, then the session itself
        if receiver:
            receiver.stop()
        if session.video_protocol is not None:
            session.video_protocol.stop()
        if controller:
            controller.stop()
        session.close()
    return 0


def _show_window(cfg, relay, controller) -> None:
    from tello_viewer.views.opencv_video_view import OpenCVVideoView

    view = OpenCVVideoView(
        relay, controller,
        width=cfg.video_width, height=cfg.video_height, fps=cfg.render_fps,
    )

    def signal_handler(sig, frame):
        logger.info("[main] Caught signal, shutting down...")
        view.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    view.run()


def _serve_web(cfg, relay, controller, receiver) -> None:
    import uvicorn
    from tello_viewer.web_server import create_app

    app = create_app(relay, controller, status=lambda: {"decode": receiver.stats})
    logger.info("[main] Serving video on http://%s:%d/mjpeg", cfg.web_host, cfg.web_port)
    uvicorn.run(app, host=cfg.web_host, port=cfg.web_port, log_level="warning")


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = ViewerConfig.from_env().override(**vars(args))
    except ValueError as e:
        logger.error("[main] Invalid configuration: %s", e)
        return 1

    try:
        return run(cfg)
    except SessionError as e:
        logger.error("[main] Could not start session: %s", e)
    except SurfaceError as e:
        logger.error("[main] Could not open display: %s", e)
    except OSError as e:
        logger.error("[main] Could not open video source: %s", e)
    except KeyboardInterrupt:
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())
