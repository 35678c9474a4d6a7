"""Spelling quiz over one study session."""

from __future__ import annotations

import random
from typing import Callable, Optional, Sequence

from models import Feedback, VocabularyWord, WordStatus

AnswerCallback = Callable[[VocabularyWord, bool], None]


def is_correct_answer(answer: str, term: str) -> bool:
    return answer.strip().lower() == term.strip().lower()


class QuizRound:
    """Queue of words still to be spelled.

    The queue is built once from the words that are not mastered yet and
    shuffled. A correct answer removes the head; a wrong one moves it to the
    tail. ``on_answer`` is how scores reach the session store.
    """

    def __init__(
        self,
        words: Sequence[VocabularyWord],
        on_answer: Optional[AnswerCallback] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._on_answer = on_answer
        queue = [w for w in words if w.status != WordStatus.MASTERED]
        (rng or random).shuffle(queue)
        self._queue = queue
        self.total = len(words)
        self.feedback = Feedback.NONE
        self.answer = ""

    @property
    def current(self) -> VocabularyWord | None:
        return self._queue[0] if self._queue else None

    @property
    def remaining(self) -> int:
        return len(self._queue)

    @property
    def finished(self) -> bool:
        return not self._queue

    @property
    def answered(self) -> bool:
        return self.feedback != Feedback.NONE

    def set_answer(self, text: str) -> None:
        """Replace the answer with typed text."""
        if not self.answered:
            self.answer = text

    def append_letters(self, letters: str) -> None:
        """Add spelled letters after whatever is already in the answer."""
        if not self.answered:
            self.answer += letters

    def clear_answer(self) -> None:
        if not self.answered:
            self.answer = ""

    def submit(self, answer: str | None = None) -> bool:
        """Score the current answer. Returns whether it was correct."""
        word = self.current
        if word is None:
            raise RuntimeError("quiz is already finished")
        if self.answered:
            raise RuntimeError("current word was already answered")
        if answer is not None:
            self.answer = answer
        correct = is_correct_answer(self.answer, word.term)
        self.feedback = Feedback.CORRECT if correct else Feedback.INCORRECT
        if self._on_answer:
            self._on_answer(word, correct)
        return correct

    def advance(self) -> VocabularyWord | None:
        """Move to the next word; returns it, or ``None`` when finished."""
        if not self.answered:
            raise RuntimeError("submit an answer before advancing")
        head = self._queue.pop(0)
        if self.feedback == Feedback.INCORRECT:
            self._queue.append(head)
        self.feedback = Feedback.NONE
        self.answer = ""
        return self.current
