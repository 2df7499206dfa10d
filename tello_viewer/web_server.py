import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from typing import Callable, Optional

import cv2
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from tello_viewer.control.key_bindings import Action
from tello_viewer.control.key_events import KeyEvent
from tello_viewer.services.flight_controller import FlightController
from tello_viewer.services.frame_relay import StreamRelay

logger = logging.getLogger(__name__)

WS_COMMANDS = {
    "takeoff": Action.TAKE_OFF,
    "land": Action.LAND,
    "stop": Action.STOP,
}


class FrameHub:
    """
    Fan-out hub for MJPEG frames.

    Each /mjpeg client gets its own small asyncio.Queue; a slow client
    loses its oldest frame instead of holding everyone else back.
    """
    def __init__(self, per_client_queue_size: int = 2):
        self._per_client_queue_size = per_client_queue_size
        self._clients: set[asyncio.Queue] = set()
        self._lock = asyncio.Lock()
        self.latest: Optional[bytes] = None

    async def register(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(self._per_client_queue_size)
        async with self._lock:
            self._clients.add(q)
        return q

    async def unregister(self, q: asyncio.Queue) -> None:
        async with self._lock:
            self._clients.discard(q)

    async def publish(self, frame: Optional[bytes]) -> None:
        if frame is not None:
            self.latest = frame
        async with self._lock:
            clients = list(self._clients)

        for q in clients:
            if q.full():
                q.get_nowait()
            q.put_nowait(frame)


def _frame_pump_worker(
    relay: StreamRelay,
    frame_hub: FrameHub,
    stop_event: threading.Event,
    loop: asyncio.AbstractEventLoop,
    done_event: Optional[threading.Event] = None,
    jpeg_quality: int = 80,
) -> None:
    """
    Runs on its own thread: consumes the relay in order, JPEG-encodes each
    frame and hands it to the event loop. A None published to the hub
    tells MJPEG clients the stream has ended.
    """
    params = [int(cv2.IMWRITE_JPEG_QUALITY), jpeg_quality]
    for frame in relay.subscribe(timeout=0.5):
        if stop_event.is_set():
            break
        if frame is None:
            continue
        ok, jpg = cv2.imencode(".jpg", frame.to_bgr(), params)
        if not ok:
            logger.warning("[web] JPEG encode failed for frame %d", frame.seq)
            continue
        asyncio.run_coroutine_threadsafe(frame_hub.publish(jpg.tobytes()), loop)

    if not loop.is_closed():
        asyncio.run_coroutine_threadsafe(frame_hub.publish(None), loop)
    if done_event is not None:
        done_event.set()
    logger.info("[web] frame pump stopped")


def create_app(
    relay: StreamRelay,
    controller: Optional[FlightController] = None,
    status: Optional[Callable[[], dict]] = None,
) -> FastAPI:
    frame_hub = FrameHub(per_client_queue_size=2)
    pump_done = threading.Event()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        stop_event = threading.Event()
        pump = threading.Thread(
            target=_frame_pump_worker,
            args=(relay, frame_hub, stop_event, asyncio.get_running_loop(), pump_done),
            name="FramePump",
            daemon=True,
        )
        pump.start()
        yield
        stop_event.set()
        pump.join(timeout=1.0)

    app = FastAPI(title="Tello video viewer", lifespan=lifespan)
    app.state.frame_hub = frame_hub
    app.state.pump_done = pump_done
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/status")
    async def get_status():
        body = {"relay": relay.stats()}
        if status is not None:
            body.update(status())
        if controller is not None:
            body["command_failures"] = controller.failures
        return body

    @app.get("/mjpeg")
    async def mjpeg_stream():
        """Streams JPEG frames over HTTP multipart/x-mixed-replace."""
        async def frame_generator():
            q = await frame_hub.register()
            try:
                while True:
                    frame = await q.get()
                    if frame is None:
                        break
                    yield (
                        b"--frame\r\n"
                        b"Content-Type: image/jpeg\r\n\r\n" + frame + b"\r\n"
                    )
            finally:
                await frame_hub.unregister(q)

        return StreamingResponse(
            frame_generator(), media_type="multipart/x-mixed-replace; boundary=frame"
        )

    @app.websocket("/ws")
    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        try:
            while True:
                data = await websocket.receive_json()
                event = _parse_message(data)
                if event is None:
                    await websocket.send_json({"ok": False, "error": "unknown message"})
                    continue
                if controller is not None:
                    controller.handle(event)
                await websocket.send_json({"ok": True})
        except WebSocketDisconnect:
            logger.info("[web] control client disconnected")

    return app


def _parse_message(data) -> Optional[KeyEvent]:
    if not isinstance(data, dict):
        return None
    msg_type = data.get("type")
    if msg_type == "key":
        try:
            action = Action(data.get("action"))
        except ValueError:
            return None
        pressed = data.get("pressed", True)
        if not isinstance(pressed, bool):
            return None
        return KeyEvent(action, pressed)
    if msg_type == "command":
        action = WS_COMMANDS.get(data.get("command"))
        return KeyEvent(action, True) if action else None
    return None
