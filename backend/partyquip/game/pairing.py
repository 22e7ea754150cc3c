from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field

from .models import PlayerId


logger = logging.getLogger(__name__)


@dataclass
class PairingResult:
    groups: list[list[PlayerId]] = field(default_factory=list)

    @property
    def has_singleton(self) -> bool:
        return any(len(g) == 1 for g in self.groups)


def pair_up(player_ids: list[PlayerId], rng: random.Random | None = None) -> PairingResult:
    """Split players into random pairs.

    An odd player out joins the last pair as a third member. A lone player
    (nobody to pair with) ends up in a group of one, which is reported via
    ``has_singleton`` and logged instead of being fixed up here.
    """
    shuffled = list(player_ids)
    (rng or random).shuffle(shuffled)

    result = PairingResult()
    for i in range(0, len(shuffled), 2):
        if i + 1 < len(shuffled):
            result.groups.append([shuffled[i], shuffled[i + 1]])
        elif result.groups:
            result.groups[-1].append(shuffled[i])
        else:
            result.groups.append([shuffled[i]])

    if result.has_singleton:
        logger.warning("pairing produced a singleton group: %s", result.groups)
    return result
