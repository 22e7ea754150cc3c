from __future__ import annotations

from .models import Player, PlayerId, Room, ScoreCounters


def tally_step(room: Room, pair_index: int, prompt_index: int) -> dict[str, dict] | None:
    """Add the votes of one voting step to the room's score counters.

    Returns the raw vote map for broadcasting, or ``None`` when the step
    was already tallied (or there is no round data), in which case no
    counter changes.
    """
    rd = room.round_data
    if rd is None:
        return None

    key = (pair_index, prompt_index)
    if key in rd.tallied_steps:
        return None
    rd.tallied_steps.add(key)

    votes = rd.votes.get(pair_index, {}).get(prompt_index, {})
    for vote in votes.values():
        room.scores_for(vote.target_player_id).add(vote.emoji)

    return {
        voter_id: {"targetPlayerId": v.target_player_id, "emoji": v.emoji}
        for voter_id, v in votes.items()
    }


def build_leaderboard(players: list[Player], scores: dict[PlayerId, ScoreCounters]) -> list[dict]:
    entries = []
    for p in players:
        s = scores.get(p.id) or ScoreCounters()
        entries.append(
            {
                "id": p.id,
                "name": p.name,
                "laugh": s.laugh,
                "neutral": s.neutral,
                "negative": s.negative,
            }
        )
    # sorted() is stable, so full ties keep player order.
    return sorted(entries, key=lambda e: (-e["laugh"], -e["neutral"], e["negative"]))
