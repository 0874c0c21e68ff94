"""
Static question catalog.

Maps each question identifier to its section, its similarity type and, where the
type needs one, an ordinal encoding table. The catalog is built once at import
time and validated so that an entry with an inconsistent tag fails immediately.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping


UNCERTAIN_ANSWER = "prefer_not_to_answer"


class Section(str, Enum):
    LIFESTYLE = "lifestyle"
    PERSONALITY = "personality"


class QuestionType(str, Enum):
    NUMERIC_INTERVAL = "numeric_interval"
    ORDINAL = "ordinal"
    CATEGORICAL_EXACT = "categorical_exact"
    CATEGORICAL_SET_PREFERENCE = "categorical_set_preference"
    MULTI_SELECT = "multi_select"
    AGE_RANGE = "age_range"
    SAME_SIMILAR_DIFFERENT = "same_similar_different"
    DIRECTIONAL = "directional"
    BINARY = "binary"
    SPECIAL = "special"


class SpecialCase(str, Enum):
    LOVE_LANGUAGES = "love_languages"
    CONFLICT_STYLE = "conflict_style"
    SLEEP_SCHEDULE = "sleep_schedule"


_ENCODED_TYPES = {QuestionType.ORDINAL, QuestionType.SAME_SIMILAR_DIFFERENT}


@dataclass(frozen=True)
class QuestionSpec:
    question_id: str
    section: Section
    question_type: QuestionType
    special_case: SpecialCase | None = None
    ordinal_encoding: Mapping[str, int] | None = None
    # Answer that satisfies every partner (e.g. "whatever feels natural").
    flexible_answer: str | None = None
    hard_filter: bool = False

    def __post_init__(self) -> None:
        if (self.question_type == QuestionType.SPECIAL) != (self.special_case is not None):
            raise ValueError(f"{self.question_id}: special_case must be set exactly when question_type is SPECIAL")
        if self.ordinal_encoding is not None:
            if self.question_type not in _ENCODED_TYPES:
                raise ValueError(f"{self.question_id}: ordinal_encoding is not used by {self.question_type.value}")
            if len(self.ordinal_encoding) < 2:
                raise ValueError(f"{self.question_id}: ordinal_encoding needs at least two values")
            object.__setattr__(self, "ordinal_encoding", MappingProxyType(dict(self.ordinal_encoding)))
        elif self.question_type == QuestionType.ORDINAL:
            raise ValueError(f"{self.question_id}: ordinal questions require an ordinal_encoding")

    @property
    def encoded_range(self) -> int:
        values = list((self.ordinal_encoding or {}).values())
        if not values:
            return 0
        return max(values) - min(values)


def _q(question_id: str, section: Section, question_type: QuestionType, **kwargs) -> QuestionSpec:
    return QuestionSpec(question_id=question_id, section=section, question_type=question_type, **kwargs)


_L = Section.LIFESTYLE
_P = Section.PERSONALITY

_CATALOG: list[QuestionSpec] = [
    _q("q1", _L, QuestionType.CATEGORICAL_EXACT, hard_filter=True),
    _q("q2", _L, QuestionType.MULTI_SELECT, hard_filter=True),
    _q("q3", _L, QuestionType.CATEGORICAL_SET_PREFERENCE),
    _q("q4", _L, QuestionType.AGE_RANGE, hard_filter=True),
    _q("q5", _L, QuestionType.MULTI_SELECT),
    _q("q6", _L, QuestionType.MULTI_SELECT),
    _q("q7", _L, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q8", _L, QuestionType.CATEGORICAL_SET_PREFERENCE),
    _q("q9a", _L, QuestionType.MULTI_SELECT),
    _q(
        "q9b",
        _L,
        QuestionType.ORDINAL,
        ordinal_encoding={"never": 1, "occasionally": 2, "regularly": 3},
    ),
    _q("q10", _L, QuestionType.DIRECTIONAL),
    _q("q11", _L, QuestionType.CATEGORICAL_EXACT),
    _q(
        "q12",
        _L,
        QuestionType.ORDINAL,
        ordinal_encoding={"marriage": 1, "serious_commitment": 2, "connection": 3, "early_on": 4},
    ),
    _q("q13", _L, QuestionType.MULTI_SELECT),
    _q("q14", _L, QuestionType.MULTI_SELECT),
    _q("q15", _L, QuestionType.CATEGORICAL_SET_PREFERENCE),
    _q("q16", _L, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q17", _L, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q18", _L, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q19", _L, QuestionType.CATEGORICAL_SET_PREFERENCE),
    _q("q20", _L, QuestionType.CATEGORICAL_SET_PREFERENCE),
    _q("q21", _P, QuestionType.SPECIAL, special_case=SpecialCase.LOVE_LANGUAGES),
    _q("q22", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q23", _P, QuestionType.CATEGORICAL_SET_PREFERENCE),
    _q("q24", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q25", _P, QuestionType.SPECIAL, special_case=SpecialCase.CONFLICT_STYLE),
    _q(
        "q26",
        _P,
        QuestionType.ORDINAL,
        ordinal_encoding={"minimal": 1, "moderate": 2, "frequent": 3, "constant": 4},
        flexible_answer="whatever_feels_natural",
    ),
    _q("q27", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q28", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q29", _P, QuestionType.SPECIAL, special_case=SpecialCase.SLEEP_SCHEDULE),
    _q("q30", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q31", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q32", _P, QuestionType.MULTI_SELECT),
    _q("q33", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q34", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q35", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
    _q("q36", _P, QuestionType.SAME_SIMILAR_DIFFERENT),
]


def build_registry(specs: list[QuestionSpec]) -> Mapping[str, QuestionSpec]:
    registry: dict[str, QuestionSpec] = {}
    for spec in specs:
        if spec.question_id in registry:
            raise ValueError(f"Duplicate question id in catalog: {spec.question_id}")
        registry[spec.question_id] = spec
    return MappingProxyType(registry)


QUESTION_REGISTRY: Mapping[str, QuestionSpec] = build_registry(_CATALOG)

GENDER_QUESTION = "q1"
ACCEPTED_GENDERS_QUESTION = "q2"
AGE_QUESTION = "q4"


def get_question(question_id: str, registry: Mapping[str, QuestionSpec] | None = None) -> QuestionSpec | None:
    return (registry if registry is not None else QUESTION_REGISTRY).get(question_id)


def scored_questions(registry: Mapping[str, QuestionSpec] | None = None) -> list[QuestionSpec]:
    reg = registry if registry is not None else QUESTION_REGISTRY
    return [spec for spec in reg.values() if not spec.hard_filter]
