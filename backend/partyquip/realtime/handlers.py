from __future__ import annotations

import logging
import threading
from typing import Any

from flask import request
from flask_socketio import SocketIO, join_room

from ..game.service import GameService


logger = logging.getLogger(__name__)


def _room_id_from(data: Any) -> str:
    # startGame / nextRound arrive either as a bare room id or as {roomId}.
    if isinstance(data, dict):
        return str(data.get("roomId", "")).strip()
    if isinstance(data, (str, int)) and not isinstance(data, bool):
        return str(data).strip()
    return ""


def _as_index(raw: Any) -> int | None:
    # Whole numbers or digit strings only; 0.9 must not address slot 0.
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if text.isascii() and text.isdigit():
            return int(text)
    return None


def register_socketio_handlers(
    socketio: SocketIO,
    service: GameService,
    run_room_tasks: bool = True,
    tick_sec: float = 0.25,
) -> None:
    room_tasks: dict[str, bool] = {}
    room_tasks_lock = threading.Lock()

    def _ensure_room_task(room_id: str) -> None:
        if not run_room_tasks:
            return
        with room_tasks_lock:
            if room_tasks.get(room_id):
                return
            room_tasks[room_id] = True

        def _runner() -> None:
            try:
                while service.registry.get(room_id) is not None:
                    service.tick(room_id)
                    if service.registry.evict_if_idle(room_id):
                        break
                    socketio.sleep(tick_sec)
            except Exception:
                logger.exception("room %s: runner crashed", room_id)
            finally:
                with room_tasks_lock:
                    room_tasks.pop(room_id, None)

        socketio.start_background_task(_runner)

    @socketio.on("joinRoom")
    def on_join_room(data):
        payload = data if isinstance(data, dict) else {}
        room_id = str(payload.get("roomId", "")).strip()
        name = str(payload.get("playerName", "")).strip()
        if not room_id or not name:
            return

        join_room(room_id)
        room = service.join(room_id, request.sid, name)
        if room is not None:
            _ensure_room_task(room.id)

    @socketio.on("startGame")
    def on_start_game(data):
        room_id = _room_id_from(data)
        if room_id:
            service.start_game(room_id, request.sid)

    @socketio.on("nextRound")
    def on_next_round(data):
        room_id = _room_id_from(data)
        if room_id:
            service.next_round(room_id, request.sid)

    @socketio.on("submitAnswer")
    def on_submit_answer(data):
        payload = data if isinstance(data, dict) else {}
        room_id = str(payload.get("roomId", "")).strip()
        if not room_id:
            return
        service.submit_answer(
            room_id,
            request.sid,
            _as_index(payload.get("pairIndex")),
            _as_index(payload.get("qIndex")),
            payload.get("answer"),
        )

    @socketio.on("submitVote")
    def on_submit_vote(data):
        payload = data if isinstance(data, dict) else {}
        room_id = str(payload.get("roomId", "")).strip()
        if not room_id:
            return
        service.submit_vote(
            room_id,
            request.sid,
            _as_index(payload.get("pairIndex")),
            _as_index(payload.get("qIndex")),
            payload.get("targetPlayerId"),
            payload.get("emoji"),
        )

    @socketio.on("disconnect")
    def on_disconnect(*args):
        service.disconnect(request.sid)
