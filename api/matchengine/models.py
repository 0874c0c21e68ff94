from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class Importance(str, Enum):
    NOT_IMPORTANT = "not_important"
    SOMEWHAT_IMPORTANT = "somewhat_important"
    IMPORTANT = "important"
    VERY_IMPORTANT = "very_important"
    DEALBREAKER = "dealbreaker"


@dataclass(frozen=True)
class NoPreference:
    """The respondent is satisfied by any partner value."""

    def __repr__(self) -> str:
        return "NoPreference()"


NO_PREFERENCE = NoPreference()


@dataclass(frozen=True)
class Specific:
    value: Any


Preference = Union[NoPreference, Specific]


@dataclass(frozen=True)
class AgeRange:
    min_age: int
    max_age: int

    def contains(self, age: int) -> bool:
        return self.min_age <= age <= self.max_age


@dataclass(frozen=True)
class LoveLanguageAnswer:
    show: frozenset[str]
    receive: frozenset[str]


@dataclass(frozen=True)
class Response:
    answer: Any
    preference: Preference = NO_PREFERENCE
    importance: Importance = Importance.SOMEWHAT_IMPORTANT

    @property
    def is_dealbreaker(self) -> bool:
        return self.importance == Importance.DEALBREAKER

    @property
    def has_preference(self) -> bool:
        return isinstance(self.preference, Specific)


@dataclass(frozen=True)
class User:
    # Read-only for the duration of one run; never mutated by the engine.
    user_id: str
    responses: dict[str, Response] = field(default_factory=dict)
    gender: str | None = None
    accepted_genders: frozenset[str] = frozenset()
    age: int | None = None
    age_range: AgeRange | None = None

    def response(self, question_id: str) -> Response | None:
        return self.responses.get(question_id)


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    return tuple(sorted((user_a, user_b)))


@dataclass(frozen=True)
class QuestionScore:
    """Per-question result for a dyad.

    ``similarity`` is the value the aggregator consumes; the two satisfaction
    terms record how well each side's preference was met and feed diagnostics.
    """

    similarity: float
    a_satisfaction: float
    b_satisfaction: float

    @classmethod
    def symmetric(cls, value: float) -> "QuestionScore":
        return cls(value, value, value)

    @classmethod
    def from_sides(cls, a_satisfaction: float, b_satisfaction: float) -> "QuestionScore":
        return cls((a_satisfaction + b_satisfaction) / 2.0, a_satisfaction, b_satisfaction)

    @property
    def asymmetry(self) -> float:
        return abs(self.a_satisfaction - self.b_satisfaction)
