from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.service import room_public_state

bp = Blueprint("rooms", __name__)


@bp.get("/rooms/<room_id>")
def get_room(room_id: str):
    service = current_app.extensions["partyquip"]
    room = service.registry.get(room_id)
    if not room:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(room_public_state(room))
