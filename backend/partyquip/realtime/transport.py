from __future__ import annotations

from typing import Any, Protocol

from flask_socketio import SocketIO


class Transport(Protocol):
    def send_to_connection(self, sid: str, event: str, payload: Any) -> None: ...

    def broadcast_to_room(self, room_id: str, event: str, payload: Any) -> None: ...


class SocketIOTransport:
    def __init__(self, socketio: SocketIO) -> None:
        self.socketio = socketio

    def send_to_connection(self, sid: str, event: str, payload: Any) -> None:
        # Every Socket.IO connection sits in a room named after its sid.
        self.socketio.emit(event, payload, to=sid)

    def broadcast_to_room(self, room_id: str, event: str, payload: Any) -> None:
        self.socketio.emit(event, payload, to=room_id)
