"""Room-scoped relay used by realtime minigames.

The server is a plain room broadcaster: it never looks inside payloads, it
only forwards each JSON line to the other members of the sender's room. The
client keeps its socket on a private asyncio thread and hands received
envelopes to the frame loop through `poll()`, so game code only ever runs on
one thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
import queue
import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Set

log = logging.getLogger(__name__)

MESSAGE_TYPES = ("join", "joined", "input", "state")

STATUS_CONNECTING = "connecting"
STATUS_OPEN = "open"
STATUS_CLOSED = "closed"
STATUS_ERROR = "error"


def make_envelope(msg_type: str, room: str, payload: Optional[Dict] = None, exclude_self: bool = True) -> Dict:
    env = {"type": msg_type, "sessionCode": str(room), "payload": payload or {}}
    if not exclude_self:
        env["excludeSelf"] = False
    return env


def encode_envelope(envelope: Dict) -> bytes:
    return (json.dumps(envelope, separators=(",", ":")) + "\n").encode("utf-8")


def parse_envelope(data) -> Optional[Dict]:
    """Decode one wire line; anything that is not an envelope comes back as None."""
    if isinstance(data, (bytes, bytearray)):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        msg = json.loads(data.strip())
    except (json.JSONDecodeError, AttributeError):
        return None
    if not isinstance(msg, dict):
        return None
    if not isinstance(msg.get("type"), str) or not msg.get("sessionCode"):
        return None
    msg["sessionCode"] = str(msg["sessionCode"])
    if not isinstance(msg.get("payload"), dict):
        msg["payload"] = {}
    return msg


class RelayServer:
    """Asyncio room broadcaster running in its own thread."""

    def __init__(self, host: str = "127.0.0.1", port: int = 8765):
        self.host = host
        self.port = port
        self.loop = asyncio.new_event_loop()
        self.thread: Optional[threading.Thread] = None
        self.server: Optional[asyncio.base_events.Server] = None
        self._lock = threading.Lock()
        self._clients: Dict[str, asyncio.StreamWriter] = {}
        self._client_rooms: Dict[str, str] = {}
        self._client_users: Dict[str, Optional[str]] = {}
        self.rooms: Dict[str, Set[str]] = {}
        self.room_activity: Dict[str, float] = {}
        self._start_event = threading.Event()
        self._stop_event = threading.Event()
        self.events = queue.Queue()
        self.running = False
        self.relayed = 0

    @property
    def bound_port(self) -> int:
        if self.server and self.server.sockets:
            return self.server.sockets[0].getsockname()[1]
        return self.port

    def start(self) -> bool:
        if self.running:
            return True
        self.thread = threading.Thread(target=self._run_loop, daemon=True)
        self.thread.start()
        ready = self._start_event.wait(timeout=3)
        self.running = bool(ready and self.server)
        if not self.running:
            self.loop.call_soon_threadsafe(self.loop.stop)
        return self.running

    def stop(self):
        if not self.running:
            return
        self._stop_event.set()
        fut = asyncio.run_coroutine_threadsafe(self._shutdown(), self.loop)
        try:
            fut.result(timeout=3)
        except Exception as exc:
            log.warning("relay shutdown did not finish cleanly: %s", exc)
        self.loop.call_soon_threadsafe(self.loop.stop)
        if self.thread:
            self.thread.join(timeout=3)
        self.thread = None
        self.running = False

    def _run_loop(self):
        asyncio.set_event_loop(self.loop)
        self.loop.create_task(self._start_server())
        try:
            self.loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self.loop)
            for task in pending:
                task.cancel()
            self.loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            self.loop.close()

    async def _start_server(self):
        try:
            self.server = await asyncio.start_server(self._handle_client, self.host, self.port)
            self._log(f"Relay listening on {self.host}:{self.bound_port}")
        except OSError as exc:
            self._log(f"Failed to start relay: {exc}")
            self.server = None
        self._start_event.set()

    async def _shutdown(self):
        if self.server:
            self.server.close()
            await self.server.wait_closed()
        for writer in list(self._clients.values()):
            await self._close_writer(writer)
        with self._lock:
            self._clients.clear()
            self._client_rooms.clear()
            self._client_users.clear()
            self.rooms.clear()
            self.room_activity.clear()
        self._log("Relay stopped.")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        client_id = uuid.uuid4().hex[:12]
        peer = writer.get_extra_info("peername")
        with self._lock:
            self._clients[client_id] = writer
        self._log(f"Client connected: {peer} -> {client_id}")
        try:
            while not reader.at_eof():
                data = await reader.readline()
                if not data:
                    break
                msg = parse_envelope(data)
                if msg is None:
                    continue
                await self._handle_message(client_id, msg)
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            await self._remove_client(client_id)
            self._log(f"Client disconnected: {client_id}")

    async def _handle_message(self, client_id: str, msg: Dict):
        room = msg["sessionCode"]
        if msg["type"] == "join":
            self._join(client_id, room, msg["payload"].get("userId"))
            writer = self._clients.get(client_id)
            if writer:
                await self._send(writer, {"type": "joined", "sessionCode": room})
            return
        if msg["type"] == "joined":
            return
        # Must join first, and only into the room you joined.
        if self._client_rooms.get(client_id) != room:
            return
        exclude = client_id if msg.pop("excludeSelf", True) is not False else None
        await self._broadcast(room, msg, exclude=exclude)

    def _join(self, client_id: str, room: str, user_id: Optional[str]):
        with self._lock:
            previous = self._client_rooms.get(client_id)
            if previous == room:
                return
            if previous:
                self._leave_locked(client_id, previous)
            self.rooms.setdefault(room, set()).add(client_id)
            self.room_activity[room] = time.monotonic()
            self._client_rooms[client_id] = room
            self._client_users[client_id] = str(user_id) if user_id else None
        self._log(f"{client_id} joined room {room}")

    def _leave_locked(self, client_id: str, room: str):
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(client_id)
        if not members:
            self.rooms.pop(room, None)
            self.room_activity.pop(room, None)

    async def _remove_client(self, client_id: str):
        with self._lock:
            room = self._client_rooms.pop(client_id, None)
            if room:
                self._leave_locked(client_id, room)
            self._client_users.pop(client_id, None)
            writer = self._clients.pop(client_id, None)
        if writer:
            await self._close_writer(writer)

    async def _close_writer(self, writer: asyncio.StreamWriter):
        try:
            writer.close()
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass

    async def _send(self, writer: asyncio.StreamWriter, payload: Dict):
        try:
            writer.write(encode_envelope(payload))
            await writer.drain()
        except (ConnectionError, OSError):
            pass

    async def _broadcast(self, room: str, payload: Dict, exclude: Optional[str] = None):
        with self._lock:
            targets = [
                self._clients[cid]
                for cid in self.rooms.get(room, ())
                if cid != exclude and cid in self._clients
            ]
            self.room_activity[room] = time.monotonic()
        for writer in targets:
            await self._send(writer, payload)
        self.relayed += 1

    def kick(self, client_id: str, timeout: float = 3.0) -> bool:
        if not client_id or client_id not in self._clients or not self.loop.is_running():
            return False
        fut = asyncio.run_coroutine_threadsafe(self._remove_client(client_id), self.loop)
        try:
            fut.result(timeout=timeout)
        except Exception as exc:
            log.warning("kick %s failed: %s", client_id, exc)
            return False
        self._log(f"Kicked {client_id}")
        return True

    def close_room(self, room: str, timeout: float = 3.0) -> bool:
        with self._lock:
            members = list(self.rooms.get(room, ()))
        if not members:
            return False
        results = [self.kick(cid, timeout=timeout) for cid in members]
        return all(results)

    def idle_rooms(self, older_than: float, now: Optional[float] = None) -> List[str]:
        """Rooms with no join or relayed message for `older_than` seconds."""
        now = time.monotonic() if now is None else now
        with self._lock:
            return sorted(room for room, seen in self.room_activity.items() if now - seen >= older_than)

    def snapshot_state(self) -> Dict:
        with self._lock:
            rooms = {
                code: [
                    {"client_id": cid, "user_id": self._client_users.get(cid)}
                    for cid in sorted(members)
                ]
                for code, members in self.rooms.items()
            }
            return {
                "clients": len(self._clients),
                "rooms": rooms,
                "relayed": self.relayed,
            }

    def pop_events(self) -> List[str]:
        msgs = []
        while True:
            try:
                msgs.append(self.events.get_nowait())
            except queue.Empty:
                break
        return msgs

    def _log(self, message: str):
        log.info(message)
        self.events.put(message)


class RelayClient:
    """Threaded relay client; game code talks to it through join/send/on_message/poll."""

    def __init__(self, user_id: Optional[str] = None):
        self.loop = asyncio.new_event_loop()
        self.thread: Optional[threading.Thread] = None
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.user_id = str(user_id) if user_id else None
        self.room: Optional[str] = None
        self.status = STATUS_CLOSED
        self._joined_announced: Optional[str] = None
        self._inbox: queue.Queue = queue.Queue()
        self._handlers: List[Callable[[Dict], Any]] = []
        self._stop_event = threading.Event()
        self._open_event = threading.Event()

    @property
    def connected(self) -> bool:
        return self.status == STATUS_OPEN

    def connect(self, host: str, port: int, timeout: float = 3.0) -> bool:
        if self.thread and self.thread.is_alive():
            return self.connected
        self._stop_event.clear()
        self._open_event.clear()
        self.status = STATUS_CONNECTING
        self.thread = threading.Thread(target=self._run_loop, args=(host, port), daemon=True)
        self.thread.start()
        self._open_event.wait(timeout)
        return self.connected

    def disconnect(self):
        if not self.thread:
            return
        self._stop_event.set()
        if not self.loop.is_closed() and self.loop.is_running():
            fut = asyncio.run_coroutine_threadsafe(self._shutdown(), self.loop)
            try:
                fut.result(timeout=3)
            except Exception as exc:
                log.debug("relay client shutdown: %s", exc)
            try:
                self.loop.call_soon_threadsafe(self.loop.stop)
            except RuntimeError:
                pass
        self.thread.join(timeout=3)
        self.thread = None
        self.status = STATUS_CLOSED

    def _run_loop(self, host: str, port: int):
        asyncio.set_event_loop(self.loop)
        self.loop.create_task(self._connect(host, port))
        try:
            self.loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self.loop)
            for task in pending:
                task.cancel()
            self.loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            self.loop.close()
            # a fresh loop so connect() can be called again after a drop
            self.loop = asyncio.new_event_loop()

    async def _connect(self, host: str, port: int):
        try:
            self.reader, self.writer = await asyncio.open_connection(host, port)
        except OSError as exc:
            log.warning("relay connect to %s:%s failed: %s", host, port, exc)
            self.status = STATUS_ERROR
            self._open_event.set()
            self.loop.stop()
            return
        self.status = STATUS_OPEN
        self._joined_announced = None
        log.info("relay connected to %s:%s", host, port)
        if self.room:
            await self._write(make_envelope("join", self.room, {"userId": self.user_id}))
            self._joined_announced = self.room
        self._open_event.set()
        asyncio.create_task(self._listen())

    async def _listen(self):
        try:
            while not self.reader.at_eof():
                data = await self.reader.readline()
                if not data:
                    break
                msg = parse_envelope(data)
                if msg is None:
                    continue
                self._inbox.put(msg)
        except (ConnectionError, OSError) as exc:
            log.warning("relay connection lost: %s", exc)
            self.status = STATUS_ERROR
        finally:
            if self.status != STATUS_ERROR:
                self.status = STATUS_CLOSED
            self._stop_event.set()
            self.loop.stop()

    async def _shutdown(self):
        if self.writer:
            try:
                self.writer.close()
                await self.writer.wait_closed()
            except (ConnectionError, OSError):
                pass
        self.writer = None

    async def _write(self, envelope: Dict):
        if not self.writer:
            return
        try:
            self.writer.write(encode_envelope(envelope))
            await self.writer.drain()
        except (ConnectionError, OSError) as exc:
            log.debug("relay write dropped: %s", exc)

    def _schedule(self, envelope: Dict):
        if not self.connected or self.loop.is_closed():
            log.debug("relay not open; dropping %s", envelope.get("type"))
            return
        try:
            asyncio.run_coroutine_threadsafe(self._write(envelope), self.loop)
        except RuntimeError as exc:
            log.debug("relay loop gone; dropping %s: %s", envelope.get("type"), exc)

    # ---- relay interface ----
    def join(self, room: str):
        room = str(room)
        self.room = room
        if self._joined_announced == room:
            return
        if self.connected:
            self._joined_announced = room
            self._schedule(make_envelope("join", room, {"userId": self.user_id}))

    def send(self, room: str, msg_type: str, payload: Dict, exclude_self: bool = True):
        self._schedule(make_envelope(msg_type, room, payload, exclude_self=exclude_self))

    def on_message(self, handler: Callable[[Dict], Any]) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe():
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def poll(self) -> int:
        """Dispatch queued envelopes for the joined room; returns how many ran."""
        handled = 0
        while True:
            try:
                msg = self._inbox.get_nowait()
            except queue.Empty:
                break
            if msg.get("sessionCode") != self.room:
                continue
            handled += 1
            for handler in list(self._handlers):
                try:
                    handler(msg)
                except Exception:
                    log.exception("relay handler failed for %s", msg.get("type"))
        return handled
