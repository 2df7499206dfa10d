import os
from dataclasses import dataclass, field, fields, replace
from typing import List, Optional

import dotenv

DRONE_TYPES = ("tello", "debug")
UI_CHOICES = ("opencv", "web")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class ViewerConfig:
    """Runtime settings. Defaults < .env / environment < command line."""
    drone_type: str = "tello"
    drone_ip: str = "192.168.10.1"
    control_port: int = 8889
    video_port: int = 11111
    ui: str = "opencv"
    render_fps: float = 20.0
    video_width: int = 960
    video_height: int = 720
    move_distance: int = 20
    stream_queue_size: int = 2
    setup_commands: List[str] = field(default_factory=list)
    command_timeout: float = 7.0
    connect_attempts: int = 10
    web_host: str = "0.0.0.0"
    web_port: int = 8000
    dump_packets: bool = False
    debug_packets: bool = False
    dump_dir: Optional[str] = None
    replay_file: Optional[str] = None

    @classmethod
    def from_env(cls, load_dotenv: bool = True) -> "ViewerConfig":
        if load_dotenv:
            dotenv.load_dotenv()
        cfg = cls(
            drone_type=os.getenv("DRONE_TYPE", cls.drone_type).lower(),
            drone_ip=os.getenv("DRONE_IP", cls.drone_ip),
            control_port=int(os.getenv("CONTROL_PORT", cls.control_port)),
            video_port=int(os.getenv("VIDEO_PORT", cls.video_port)),
            ui=os.getenv("VIEWER_UI", cls.ui).lower(),
            render_fps=float(os.getenv("RENDER_FPS", cls.render_fps)),
            move_distance=int(os.getenv("MOVE_DISTANCE", cls.move_distance)),
            stream_queue_size=int(os.getenv("STREAM_QUEUE_SIZE", cls.stream_queue_size)),
            setup_commands=_env_list("SETUP_COMMANDS"),
            command_timeout=float(os.getenv("COMMAND_TIMEOUT", cls.command_timeout)),
            connect_attempts=int(os.getenv("CONNECT_ATTEMPTS", cls.connect_attempts)),
            web_host=os.getenv("WEB_HOST", cls.web_host),
            web_port=int(os.getenv("WEB_PORT", cls.web_port)),
            dump_packets=_env_bool("DUMP_PACKETS"),
            debug_packets=_env_bool("RC_DEBUG_PACKETS"),
            dump_dir=os.getenv("DUMP_DIR") or None,
            replay_file=os.getenv("REPLAY_FILE") or None,
        )
        cfg.validate()
        return cfg

    def override(self, **values) -> "ViewerConfig":
        """Copy with every non-None value applied (argparse leaves unset flags as None)."""
        known = {f.name for f in fields(self)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown settings: {sorted(unknown)}")
        cfg = replace(self, **{k: v for k, v in values.items() if v is not None})
        cfg.validate()
        return cfg

    def validate(self) -> None:
        if self.drone_type not in DRONE_TYPES:
            raise ValueError(f"Unknown drone type: {self.drone_type}")
        if self.ui not in UI_CHOICES:
            raise ValueError(f"Unknown UI: {self.ui}")
        if self.render_fps <= 0:
            raise ValueError("render_fps must be positive")
        if not 20 <= self.move_distance <= 500:
            raise ValueError("move_distance must be 20..500 cm")
        if self.stream_queue_size < 1:
            raise ValueError("stream_queue_size must be at least 1")
        if self.drone_type == "debug" and not self.replay_file:
            raise ValueError("the debug drone needs a replay file (--replay)")
