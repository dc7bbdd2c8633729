"""
mpv JSON IPC client (Unix socket, `--input-ipc-server`).

Commands are answered in order, but mpv interleaves asynchronous events with
the replies, so anything that is not our reply is buffered and handed out by
next_event().
"""

from __future__ import annotations
import json
import logging
import select
import socket
from collections import deque
from typing import Any, Deque

from events import (
    ClientMessage, FileLoaded, PlaybackRestart, PropertyChange, Seek, Shutdown,
)

log = logging.getLogger("mpv")

OBSERVED_PROPERTIES = (("pause", 1), ("speed", 2))


class MpvConnectionError(Exception): ...

class MpvPropertyUnavailable(LookupError): ...


def parse_event(msg: dict):
    """Map a raw IPC event dict to an event object, None for ones we ignore."""
    name = msg.get("event")
    if name == "file-loaded":
        return FileLoaded()
    if name == "playback-restart":
        return PlaybackRestart()
    if name == "seek":
        return Seek()
    if name == "property-change":
        return PropertyChange(msg.get("name", ""), msg.get("data"))
    if name == "client-message":
        return ClientMessage(tuple(msg.get("args") or ()))
    if name == "shutdown":
        return Shutdown()
    return None


class MpvClient:
    def __init__(self, path: str, timeout: float = 5):
        self.path = path
        self.timeout = timeout
        self.sock: socket.socket | None = None
        self._buf = b""
        self._events: Deque[dict] = deque()
        self._request_id = 0

    # -------- connection --------
    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.connect(self.path)
        except OSError as e:
            sock.close()
            raise MpvConnectionError(f"Cannot connect to mpv at {self.path}: {e}") from e
        self.sock = sock
        log.info("Connected to mpv IPC at %s", self.path)
        for name, observer_id in OBSERVED_PROPERTIES:
            self.command("observe_property", observer_id, name)

    def close(self) -> None:
        if self.sock is not None:
            try:
                self.sock.close()
            except OSError:
                pass
            self.sock = None

    def _read_line(self, timeout: float | None) -> dict | None:
        while b"\n" not in self._buf:
            if self.sock is None:
                raise MpvConnectionError("Not connected to mpv")
            ready, _, _ = select.select([self.sock], [], [], timeout)
            if not ready:
                return None
            try:
                chunk = self.sock.recv(65536)
            except OSError as e:
                raise MpvConnectionError(str(e)) from e
            if not chunk:
                raise MpvConnectionError("mpv closed the IPC socket")
            self._buf += chunk

        line, self._buf = self._buf.split(b"\n", 1)
        if not line.strip():
            return {}
        try:
            return json.loads(line)
        except ValueError:
            log.debug("Ignoring malformed IPC line: %r", line[:200])
            return {}

    # -------- commands --------
    def command(self, *args: Any) -> Any:
        if self.sock is None:
            raise MpvConnectionError("Not connected to mpv")
        self._request_id += 1
        request_id = self._request_id
        data = json.dumps({"command": list(args), "request_id": request_id})
        try:
            self.sock.sendall(data.encode("utf-8") + b"\n")
        except OSError as e:
            raise MpvConnectionError(str(e)) from e

        while True:
            msg = self._read_line(self.timeout)
            if msg is None:
                raise MpvConnectionError(f"Timed out waiting for reply to {args[0]}")
            if "event" in msg:
                self._events.append(msg)
                continue
            if msg.get("request_id") != request_id:
                continue
            if msg.get("error") != "success":
                raise MpvPropertyUnavailable(f"{args}: {msg.get('error')}")
            return msg.get("data")

    def get_property(self, name: str) -> Any:
        return self.command("get_property", name)

    def show_text(self, text: str, duration_ms: int = 3000) -> None:
        """Best-effort OSD message."""
        try:
            self.command("show-text", text, duration_ms)
        except MpvPropertyUnavailable as e:
            log.debug("show-text failed: %s", e)

    # -------- events --------
    def next_event(self, timeout: float | None):
        """Next parsed event, or None if nothing relevant arrived in time."""
        if self._events:
            return parse_event(self._events.popleft())
        msg = self._read_line(timeout)
        if not msg or "event" not in msg:
            return None
        return parse_event(msg)
