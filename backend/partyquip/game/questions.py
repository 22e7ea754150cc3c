from __future__ import annotations

import json
import logging
import random
from pathlib import Path


logger = logging.getLogger(__name__)


DEFAULT_QUESTIONS = [
    "What is the most ridiculous situation you have ever been in?",
    "If you were a superhero for one day, what would you do?",
    "Which of your habits would you get rid of?",
    "What advice would you give your 10-year-old self?",
    "What is the strangest food you have ever tried?",
    "Which skill would you master overnight?",
]


class QuestionSource:
    def __init__(self, questions: list[str], rng: random.Random | None = None) -> None:
        # Duplicates would let a pair receive the same prompt twice.
        self.questions = list(dict.fromkeys(str(q) for q in questions))
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self.questions)

    def sample(self, n: int) -> list[str]:
        """Pick ``n`` distinct prompts in random order."""
        if n > len(self.questions):
            raise ValueError(f"question bank has {len(self.questions)} prompts, {n} requested")
        return self._rng.sample(self.questions, n)


def load_questions(path: str | Path | None, rng: random.Random | None = None) -> QuestionSource:
    if not path:
        return QuestionSource(DEFAULT_QUESTIONS, rng=rng)

    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.warning("question bank %s not found, using built-in questions", p)
        return QuestionSource(DEFAULT_QUESTIONS, rng=rng)
    except (OSError, ValueError) as exc:
        logger.warning("failed to read question bank %s (%s), using built-in questions", p, exc)
        return QuestionSource(DEFAULT_QUESTIONS, rng=rng)

    questions = [q.strip() for q in data if isinstance(q, str) and q.strip()] if isinstance(data, list) else []
    # Every pair needs two distinct prompts.
    if len(set(questions)) < 2:
        logger.warning("question bank %s has fewer than 2 prompts, using built-in questions", p)
        return QuestionSource(DEFAULT_QUESTIONS, rng=rng)

    logger.info("loaded %d questions from %s", len(questions), p)
    return QuestionSource(questions, rng=rng)
