import argparse
import collections
import logging
import os
import threading
import time
from dataclasses import dataclass, asdict
from typing import Any, Deque, Dict, Optional

from flask import Flask, jsonify, request, abort

from relay import RelayServer

log = logging.getLogger(__name__)


@dataclass
class HeadlessConfig:
    host: str = "0.0.0.0"
    port: int = 8765
    web_host: str = "0.0.0.0"
    web_port: int = 5000
    idle_room_timeout: float = 0.0  # seconds; 0 keeps idle rooms open
    event_history: int = 200


def _coerce_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return default


def _coerce_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _coerce_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class HeadlessController:
    def __init__(self, server: RelayServer, config: HeadlessConfig):
        self.server = server
        self._config = config
        self._config_lock = threading.Lock()
        self._loop_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self.recent_events: Deque[str] = collections.deque(maxlen=max(1, config.event_history))
        self.started_at = time.time()

    def start(self) -> bool:
        if not self.server.start():
            return False
        self._loop_thread = threading.Thread(target=self._loop, daemon=True)
        self._loop_thread.start()
        return True

    def stop(self):
        self._stop_event.set()
        if self._loop_thread:
            self._loop_thread.join(timeout=2)
        self.server.stop()

    def get_config(self) -> Dict[str, Any]:
        with self._config_lock:
            return asdict(self._config)

    def update_config(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        with self._config_lock:
            cfg = self._config
            if "idle_room_timeout" in payload:
                cfg.idle_room_timeout = max(
                    0.0, _coerce_float(payload.get("idle_room_timeout"), cfg.idle_room_timeout)
                )
            if "event_history" in payload:
                cfg.event_history = max(1, _coerce_int(payload.get("event_history"), cfg.event_history))
                self.recent_events = collections.deque(self.recent_events, maxlen=cfg.event_history)
        return self.get_config()

    def kick(self, client_id: str) -> bool:
        if not client_id:
            return False
        return self.server.kick(client_id)

    def close_room(self, room: str) -> bool:
        if not room:
            return False
        return self.server.close_room(room)

    def collect_events(self):
        for message in self.server.pop_events():
            self.recent_events.append(message)

    def close_idle_rooms(self, now: Optional[float] = None):
        timeout = self.get_config().get("idle_room_timeout") or 0.0
        if timeout <= 0:
            return []
        closed = []
        for room in self.server.idle_rooms(timeout, now=now):
            if self.server.close_room(room):
                log.info("closed idle room %s", room)
                closed.append(room)
        return closed

    def _loop(self):
        while not self._stop_event.is_set():
            self.collect_events()
            self.close_idle_rooms()
            time.sleep(0.5)


def _build_app(controller: HeadlessController, admin_token: str) -> Flask:
    app = Flask(__name__)
    last_status_signature = None

    class _StatusLogFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:
            message = record.getMessage()
            return "GET /status" not in message and "POST /status" not in message

    logging.getLogger("werkzeug").addFilter(_StatusLogFilter())

    def require_token():
        if not admin_token:
            return
        token = request.headers.get("X-Admin-Token") or ""
        if token != admin_token:
            abort(401)

    @app.get("/status")
    def status():
        nonlocal last_status_signature
        controller.collect_events()
        state = controller.server.snapshot_state()
        rooms = state.get("rooms") or {}
        payload = {
            "relay": state,
            "running": controller.server.running,
            "room_count": len(rooms),
            "client_count": state.get("clients", 0),
            "events": list(controller.recent_events)[-20:],
            "config": controller.get_config(),
            "uptime_sec": int(time.time() - controller.started_at),
        }
        signature = (
            payload["running"],
            payload["client_count"],
            tuple((code, len(members)) for code, members in sorted(rooms.items())),
        )
        if signature != last_status_signature:
            last_status_signature = signature
            app.logger.info(
                "Status change: clients=%s rooms=%s",
                payload["client_count"],
                payload["room_count"],
            )
        return jsonify(payload)

    @app.post("/kick")
    def kick():
        require_token()
        data = request.get_json(silent=True) or {}
        ok = controller.kick(data.get("client_id") or "")
        return jsonify({"ok": ok})

    @app.post("/close_room")
    def close_room():
        require_token()
        data = request.get_json(silent=True) or {}
        ok = controller.close_room(str(data.get("sessionCode") or data.get("room") or ""))
        return jsonify({"ok": ok})

    @app.post("/config")
    def update_config():
        require_token()
        data = request.get_json(silent=True) or {}
        cfg = controller.update_config(data)
        return jsonify(cfg)

    return app


def main():
    parser = argparse.ArgumentParser(description="Headless relay server with admin web hub.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--web-host", default="0.0.0.0")
    parser.add_argument("--web-port", type=int, default=5000)
    parser.add_argument("--idle-room-timeout", type=float, default=0.0)
    parser.add_argument("--event-history", type=int, default=200)
    parser.add_argument("--debug", action="store_true", default=_coerce_bool(os.getenv("ROLLPLAY_DEBUG"), False))
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    admin_token = os.getenv("ROLLPLAY_ADMIN_TOKEN", "")

    config = HeadlessConfig(
        host=args.host,
        port=args.port,
        web_host=args.web_host,
        web_port=args.web_port,
        idle_room_timeout=max(0.0, args.idle_room_timeout),
        event_history=max(1, args.event_history),
    )

    server = RelayServer(host=config.host, port=config.port)
    controller = HeadlessController(server, config)
    if not controller.start():
        raise SystemExit("Failed to start relay server.")

    app = _build_app(controller, admin_token=admin_token)
    try:
        app.run(host=config.web_host, port=config.web_port, threaded=True, use_reloader=False)
    finally:
        controller.stop()


if __name__ == "__main__":
    main()
