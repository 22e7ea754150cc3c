from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Any, Callable

from .models import (
    PROMPTS_PER_PAIR,
    REACTIONS,
    Pair,
    Player,
    PlayerId,
    Room,
    RoundData,
    Vote,
    VotingCursor,
)
from .pairing import pair_up
from .questions import QuestionSource
from .registry import RoomRegistry
from .scoring import build_leaderboard, tally_step

if TYPE_CHECKING:
    from ..realtime.transport import Transport


logger = logging.getLogger(__name__)


def _valid_index(value: Any, size: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < size


def players_payload(room: Room) -> list[dict]:
    return [{"id": p.id, "name": p.name} for p in room.players]


def room_public_state(room: Room) -> dict:
    with room.lock:
        payload: dict[str, Any] = {
            "roomId": room.id,
            "hostId": room.host_id,
            "state": room.phase,
            "round": room.round,
            "totalRounds": room.total_rounds,
            "players": players_payload(room),
            "nextRoundAtMs": room.next_round_at_ms,
        }

        rd = room.round_data
        if rd is not None and room.phase in ("answering", "voting"):
            payload["pairs"] = [{"pairIndex": i, "members": list(p.members)} for i, p in enumerate(rd.pairs)]
            payload["answersCount"] = rd.answers_count
            payload["totalExpectedAnswers"] = rd.total_expected_answers
            payload["roundEndsAtMs"] = rd.round_ends_at_ms
            if room.phase == "voting":
                payload["votingCursor"] = {
                    "pairIndex": rd.voting_cursor.pair_index,
                    "qIndex": rd.voting_cursor.prompt_index,
                }
                payload["stepEndsAtMs"] = rd.step_ends_at_ms

        return payload


class GameService:
    """Per-room game state machine.

    Every public method takes the room lock, so answers, votes and timer
    ticks for one room are applied one at a time. Timers are deadlines on
    the room; ``tick`` fires whichever one has passed.

    ``next_round`` is accepted from the lobby or from results only, never
    while a round is answering or voting.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        transport: Transport,
        questions: QuestionSource,
        round_duration_sec: int = 60,
        vote_step_timeout_sec: int = 30,
        next_round_delay_sec: int = 5,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.registry = registry
        self.transport = transport
        self.questions = questions
        self.round_duration_ms = round_duration_sec * 1000
        self.vote_step_timeout_ms = vote_step_timeout_sec * 1000
        self.next_round_delay_ms = next_round_delay_sec * 1000
        self.rng = rng or random.Random()
        self.clock = clock or registry.clock

    # ---- lobby ----

    def join(self, room_id: str, sid: str, name: str) -> Room | None:
        room_id = str(room_id or "").strip()
        name = str(name or "").strip()
        if not room_id or not name:
            return None

        while True:
            room, _ = self.registry.get_or_create(room_id)
            with room.lock:
                # Evicted between lookup and lock; fetch a fresh one.
                if self.registry.get(room_id) is not room:
                    continue
                # A fresh activity stamp keeps the idle policy off this room.
                self._touch(room)

                if room.get_player(sid) is None:
                    room.players.append(Player(id=PlayerId(sid), name=name))
                    room.scores_for(PlayerId(sid))
                    logger.info("room %s: %s joined as %r", room.id, sid, name)

                if room.host_id is None or room.get_player(room.host_id) is None:
                    room.host_id = PlayerId(sid)

                self.registry.track(sid, room.id)

                self.transport.broadcast_to_room(
                    room.id,
                    "roomJoined",
                    {
                        "roomId": room.id,
                        "players": players_payload(room),
                        "hostId": room.host_id,
                        "round": room.round,
                        "state": room.phase,
                    },
                )
                self.transport.broadcast_to_room(room.id, "playerListUpdate", {"players": players_payload(room)})
                return room

    def disconnect(self, sid: str) -> list[Room]:
        rooms = self.registry.rooms_for(sid)
        for room in rooms:
            with room.lock:
                self._remove_player_locked(room, sid)
            self.registry.untrack(sid, room.id)
        return rooms

    def _remove_player_locked(self, room: Room, sid: str) -> None:
        player = room.get_player(sid)
        if player is None:
            return

        # Scores stay behind: pending votes may still target this player.
        room.players.remove(player)
        self._touch(room)
        logger.info("room %s: %s left", room.id, sid)
        self.transport.broadcast_to_room(room.id, "playerListUpdate", {"players": players_payload(room)})

        if room.host_id == sid:
            if room.players:
                room.host_id = room.players[0].id
                logger.info("room %s: host is now %s", room.id, room.host_id)
                self.transport.broadcast_to_room(room.id, "hostChanged", {"hostId": room.host_id})
            else:
                room.host_id = None

    def start_game(self, room_id: str, sid: str) -> bool:
        room = self.registry.get(room_id)
        if room is None:
            return False
        with room.lock:
            if sid != room.host_id or room.phase != "lobby" or not room.players:
                logger.debug("room %s: start_game from %s ignored", room.id, sid)
                return False
            self._start_round_locked(room)
            return True

    def next_round(self, room_id: str, sid: str) -> bool:
        room = self.registry.get(room_id)
        if room is None:
            return False
        with room.lock:
            # Never mid-round: the running round's deadlines would be lost.
            if sid != room.host_id or room.phase not in ("lobby", "results") or room.round >= room.total_rounds:
                logger.debug("room %s: next_round from %s ignored", room.id, sid)
                return False
            self._start_round_locked(room)
            return True

    # ---- answering ----

    def _start_round_locked(self, room: Room) -> None:
        room.round += 1
        room.phase = "answering"
        room.next_round_at_ms = None

        grouping = pair_up(room.player_ids(), self.rng)
        pairs = [
            Pair(members=list(group), prompts=self.questions.sample(PROMPTS_PER_PAIR))
            for group in grouping.groups
        ]
        now = self.clock()
        room.round_data = RoundData(
            pairs=pairs,
            total_expected_answers=sum(PROMPTS_PER_PAIR * p.need_count for p in pairs),
            round_ends_at_ms=now + self.round_duration_ms,
        )
        self._touch(room)
        logger.info(
            "room %s: round %d/%d started with %d pairs",
            room.id,
            room.round,
            room.total_rounds,
            len(pairs),
        )

        for pair_index, pair in enumerate(pairs):
            self._show_prompt(pair_index, pair, 0)

        self.transport.broadcast_to_room(
            room.id,
            "roundStarted",
            {
                "round": room.round,
                "pairs": [{"pairIndex": i, "members": list(p.members)} for i, p in enumerate(pairs)],
                "totalRounds": room.total_rounds,
            },
        )

    def _show_prompt(self, pair_index: int, pair: Pair, prompt_index: int) -> None:
        payload = {"pairIndex": pair_index, "qIndex": prompt_index, "question": pair.prompts[prompt_index]}
        for sid in pair.members:
            self.transport.send_to_connection(sid, "showQuestion", payload)

    def submit_answer(self, room_id: str, sid: str, pair_index: Any, prompt_index: Any, answer: Any) -> bool:
        room = self.registry.get(room_id)
        if room is None:
            return False

        with room.lock:
            rd = room.round_data
            if room.phase != "answering" or rd is None:
                return False
            if not _valid_index(pair_index, len(rd.pairs)) or not _valid_index(prompt_index, PROMPTS_PER_PAIR):
                return False

            pair = rd.pairs[pair_index]
            if sid not in pair.members:
                return False

            answers = pair.answers[prompt_index]
            text = answer.strip() if isinstance(answer, str) else ""
            if sid in answers or not text:
                logger.debug("room %s: answer from %s for %d/%d dropped", room.id, sid, pair_index, prompt_index)
                return False

            now = self.clock()
            answers[PlayerId(sid)] = text
            rd.answers_count += 1
            if pair.first_answer_time_ms is None:
                pair.first_answer_time_ms = now
            self._touch(room)

            if prompt_index == 0 and len(answers) == pair.need_count:
                self._show_prompt(pair_index, pair, 1)

            if rd.answers_count >= rd.total_expected_answers:
                logger.info("room %s: all %d answers in", room.id, rd.answers_count)
                self._begin_voting_locked(room)
            return True

    def _begin_voting_locked(self, room: Room) -> bool:
        rd = room.round_data
        if room.phase != "answering" or rd is None:
            return False

        rd.round_ends_at_ms = None
        room.phase = "voting"
        rd.voting_cursor = VotingCursor()
        logger.info("room %s: voting started (%d/%d answers)", room.id, rd.answers_count, rd.total_expected_answers)
        self.transport.broadcast_to_room(room.id, "votingPhaseStarted", {})
        self._open_step_locked(room)
        return True

    # ---- voting ----

    def _open_step_locked(self, room: Room) -> None:
        rd = room.round_data
        assert rd is not None

        while True:
            pair_index, prompt_index = rd.voting_cursor.key()
            if pair_index >= len(rd.pairs):
                rd.step_key = None
                rd.step_ends_at_ms = None
                self._finish_round_locked(room)
                return

            pair = rd.pairs[pair_index]
            answers = pair.answers.get(prompt_index, {})
            if len(answers) >= 2:
                break
            logger.debug("room %s: skipping step %d/%d (%d answers)", room.id, pair_index, prompt_index, len(answers))
            rd.voting_cursor.advance()

        eligible = [pid for pid in room.player_ids() if pid not in pair.members]
        rd.step_key = (pair_index, prompt_index)
        rd.step_eligible_voters = eligible

        self.transport.broadcast_to_room(
            room.id,
            "votingStep",
            {
                "pairIndex": pair_index,
                "qIndex": prompt_index,
                "question": pair.prompts[prompt_index],
                "answers": [
                    {"playerId": pid, "playerName": room.player_name(pid), "answer": text}
                    for pid, text in answers.items()
                ],
                "eligibleVoters": list(eligible),
            },
        )

        if rd.step_ends_at_ms is None:
            rd.step_ends_at_ms = self.clock() + self.vote_step_timeout_ms

    def submit_vote(
        self,
        room_id: str,
        sid: str,
        pair_index: Any,
        prompt_index: Any,
        target_player_id: Any,
        emoji: Any,
    ) -> bool:
        room = self.registry.get(room_id)
        if room is None:
            return False

        with room.lock:
            rd = room.round_data
            if room.phase != "voting" or rd is None:
                return False
            if not isinstance(emoji, str) or emoji not in REACTIONS:
                return False
            if not _valid_index(pair_index, len(rd.pairs)) or not _valid_index(prompt_index, PROMPTS_PER_PAIR):
                return False

            pair = rd.pairs[pair_index]
            if sid in pair.members or room.get_player(sid) is None:
                return False
            # Only the step under the cursor takes votes.
            if rd.step_key != (pair_index, prompt_index):
                return False

            step_votes = rd.step_votes(pair_index, prompt_index)
            if sid in step_votes:
                return False
            if not isinstance(target_player_id, str) or target_player_id not in pair.answers[prompt_index]:
                return False

            step_votes[PlayerId(sid)] = Vote(target_player_id=PlayerId(target_player_id), emoji=emoji)
            self._touch(room)

            if len(step_votes) >= len(rd.step_eligible_voters):
                self._close_step_locked(room, pair_index, prompt_index)
            return True

    def _close_step_locked(self, room: Room, pair_index: int, prompt_index: int) -> bool:
        """Tally the open step and move on; a no-op for any other step."""
        rd = room.round_data
        if room.phase != "voting" or rd is None or rd.step_key != (pair_index, prompt_index):
            return False

        rd.step_ends_at_ms = None
        rd.step_key = None

        votes = tally_step(room, pair_index, prompt_index)
        if votes is not None:
            self.transport.broadcast_to_room(
                room.id,
                "votingStepTally",
                {"pairIndex": pair_index, "qIndex": prompt_index, "votes": votes},
            )

        rd.voting_cursor.advance()
        self._open_step_locked(room)
        return True

    def _finish_round_locked(self, room: Room) -> None:
        room.phase = "results"
        leaderboard = build_leaderboard(room.players, room.scores)
        logger.info("room %s: round %d finished", room.id, room.round)

        self.transport.broadcast_to_room(
            room.id,
            "roundResults",
            {"round": room.round, "leaderboard": leaderboard, "totalRounds": room.total_rounds},
        )

        if room.round < room.total_rounds:
            room.next_round_at_ms = self.clock() + self.next_round_delay_ms
        else:
            room.next_round_at_ms = None
            logger.info("room %s: game finished", room.id)
            self.transport.broadcast_to_room(room.id, "gameFinished", {"leaderboard": leaderboard})

    # ---- timers ----

    def tick(self, room_id: str) -> None:
        """Fire any deadline of the room that has passed."""
        room = self.registry.get(room_id)
        if room is None:
            return

        with room.lock:
            now = self.clock()
            rd = room.round_data

            if room.phase == "answering" and rd and rd.round_ends_at_ms is not None and now >= rd.round_ends_at_ms:
                logger.info("room %s: round timer expired", room.id)
                self._begin_voting_locked(room)
            elif room.phase == "voting" and rd and rd.step_key and rd.step_ends_at_ms is not None and now >= rd.step_ends_at_ms:
                logger.info("room %s: voting step %d/%d timed out", room.id, *rd.step_key)
                self._close_step_locked(room, *rd.step_key)
            elif room.phase == "results" and room.next_round_at_ms is not None and now >= room.next_round_at_ms:
                self._start_round_locked(room)

    def _touch(self, room: Room) -> None:
        room.last_activity_ms = self.clock()
