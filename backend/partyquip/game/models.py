from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import Literal, NewType


PlayerId = NewType("PlayerId", str)
RoomId = NewType("RoomId", str)

Phase = Literal["lobby", "answering", "voting", "results"]

# Reaction emoji -> score counter attribute
REACTIONS: dict[str, str] = {
    "😂": "laugh",
    "🙂": "neutral",
    "💩": "negative",
}

PROMPTS_PER_PAIR = 2


@dataclass
class Player:
    id: PlayerId
    name: str


@dataclass
class ScoreCounters:
    laugh: int = 0
    neutral: int = 0
    negative: int = 0

    def add(self, emoji: str) -> bool:
        category = REACTIONS.get(emoji)
        if category is None:
            return False
        setattr(self, category, getattr(self, category) + 1)
        return True


@dataclass
class Vote:
    target_player_id: PlayerId
    emoji: str


@dataclass
class Pair:
    members: list[PlayerId]
    prompts: list[str]
    answers: dict[int, dict[PlayerId, str]] = field(
        default_factory=lambda: {i: {} for i in range(PROMPTS_PER_PAIR)}
    )
    first_answer_time_ms: int | None = None

    @property
    def need_count(self) -> int:
        # Triads still only need two answers per prompt.
        return min(2, len(self.members))


@dataclass
class VotingCursor:
    pair_index: int = 0
    prompt_index: int = 0

    def key(self) -> tuple[int, int]:
        return self.pair_index, self.prompt_index

    def advance(self) -> None:
        if self.prompt_index == 0:
            self.prompt_index = 1
        else:
            self.prompt_index = 0
            self.pair_index += 1


@dataclass
class RoundData:
    pairs: list[Pair]
    answers_count: int = 0
    total_expected_answers: int = 0
    voting_cursor: VotingCursor = field(default_factory=VotingCursor)
    votes: dict[int, dict[int, dict[PlayerId, Vote]]] = field(default_factory=dict)
    round_ends_at_ms: int | None = None
    # Open voting step bookkeeping
    step_ends_at_ms: int | None = None
    step_key: tuple[int, int] | None = None
    step_eligible_voters: list[PlayerId] = field(default_factory=list)
    tallied_steps: set[tuple[int, int]] = field(default_factory=set)

    def step_votes(self, pair_index: int, prompt_index: int) -> dict[PlayerId, Vote]:
        return self.votes.setdefault(pair_index, {}).setdefault(prompt_index, {})


@dataclass
class Room:
    id: RoomId
    host_id: PlayerId | None = None
    players: list[Player] = field(default_factory=list)
    round: int = 0
    total_rounds: int = 3
    scores: dict[PlayerId, ScoreCounters] = field(default_factory=dict)
    phase: Phase = "lobby"
    round_data: RoundData | None = None
    next_round_at_ms: int | None = None
    created_at_ms: int = 0
    last_activity_ms: int = 0
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)

    def player_ids(self) -> list[PlayerId]:
        return [p.id for p in self.players]

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def player_name(self, player_id: str) -> str:
        p = self.get_player(player_id)
        return p.name if p else player_id

    def scores_for(self, player_id: PlayerId) -> ScoreCounters:
        counters = self.scores.get(player_id)
        if counters is None:
            counters = ScoreCounters()
            self.scores[player_id] = counters
        return counters
