from __future__ import annotations

import logging
from typing import Callable, Mapping

from ..config import MatchingConfig
from ..models import NoPreference, Preference, QuestionScore, Response, Specific, User
from ..questions import QUESTION_REGISTRY, UNCERTAIN_ANSWER, QuestionSpec, QuestionType
from .directional import directional_satisfaction
from .responses import MalformedResponseError, coerce_answer
from .special_cases import SPECIAL_CASE_STRATEGIES

logger = logging.getLogger(__name__)

SAME_THRESHOLD = 0.8
DIFFERENT_THRESHOLD = 0.4

ScoreFn = Callable[[QuestionSpec, Response, Response, MatchingConfig], QuestionScore]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _answers(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig):
    return (
        coerce_answer(spec, a.answer, scale_min=cfg.likert_min, scale_max=cfg.likert_max),
        coerce_answer(spec, b.answer, scale_min=cfg.likert_min, scale_max=cfg.likert_max),
    )


def _preference_kind(preference: Preference) -> object:
    return preference.value if isinstance(preference, Specific) else None


def jaccard(a: frozenset[str], b: frozenset[str]) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def likert_similarity(a: float, b: float, cfg: MatchingConfig) -> float:
    return _clamp(1.0 - abs(a - b) / (cfg.likert_max - cfg.likert_min))


def numeric_interval_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_val, b_val = _answers(spec, a, b, cfg)
    if UNCERTAIN_ANSWER in (a_val, b_val):
        return QuestionScore.symmetric(cfg.uncertainty_similarity)
    return QuestionScore.symmetric(likert_similarity(a_val, b_val, cfg))


def _ordinal_side(preference: Preference, own: int, partner: int, partner_answer: str, encoded_range: int) -> float:
    if isinstance(preference, NoPreference):
        return 1.0
    kind = _preference_kind(preference)
    if kind == "same":
        return 1.0 if own == partner else 0.0
    if kind == "similar":
        return _clamp(1.0 - abs(own - partner) / encoded_range)
    if isinstance(kind, frozenset):
        return 1.0 if not kind or partner_answer in kind else 0.0
    raise MalformedResponseError(f"unsupported ordinal preference {kind!r}")


def ordinal_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_ans, b_ans = _answers(spec, a, b, cfg)
    if spec.flexible_answer and spec.flexible_answer in (a_ans, b_ans):
        return QuestionScore.symmetric(1.0)

    uncertain = UNCERTAIN_ANSWER in (a_ans, b_ans)
    encoding = spec.ordinal_encoding or {}

    def side(preference: Preference, own_ans: str, partner_ans: str) -> float:
        if isinstance(preference, NoPreference):
            return 1.0
        if uncertain:
            return cfg.uncertainty_similarity
        return _ordinal_side(preference, encoding[own_ans], encoding[partner_ans], partner_ans, spec.encoded_range)

    return QuestionScore.from_sides(side(a.preference, a_ans, b_ans), side(b.preference, b_ans, a_ans))


def categorical_exact_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_ans, b_ans = _answers(spec, a, b, cfg)
    return QuestionScore.symmetric(1.0 if a_ans == b_ans else 0.0)


def _categorical_side(preference: Preference, own: str, partner: str) -> float:
    if isinstance(preference, NoPreference):
        return 1.0
    kind = _preference_kind(preference)
    if isinstance(kind, frozenset):
        return 1.0 if not kind or partner in kind else 0.0
    if kind in ("same", "similar"):
        return 1.0 if own == partner else 0.0
    if kind == "different":
        return 1.0 if own != partner else 0.0
    if isinstance(kind, str):
        return 1.0 if partner == kind else 0.0
    raise MalformedResponseError(f"unsupported categorical preference {kind!r}")


def categorical_set_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_ans, b_ans = _answers(spec, a, b, cfg)
    return QuestionScore.from_sides(
        _categorical_side(a.preference, a_ans, b_ans),
        _categorical_side(b.preference, b_ans, a_ans),
    )


def _multi_select_side(preference: Preference, own: frozenset[str], partner: frozenset[str]) -> float:
    if isinstance(preference, NoPreference):
        return 1.0
    kind = _preference_kind(preference)
    if kind == "same":
        return 1.0 if own == partner else 0.0
    if kind == "similar":
        if not partner:
            return 1.0 if not own else 0.0
        return len(own & partner) / len(partner)
    if isinstance(kind, str):
        kind = frozenset({kind})
    if isinstance(kind, frozenset):
        return 1.0 if not kind or partner & kind else 0.0
    raise MalformedResponseError(f"unsupported multi-select preference {kind!r}")


def multi_select_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_set, b_set = _answers(spec, a, b, cfg)
    if not a.has_preference and not b.has_preference:
        return QuestionScore.symmetric(jaccard(a_set, b_set))
    return QuestionScore.from_sides(
        _multi_select_side(a.preference, a_set, b_set),
        _multi_select_side(b.preference, b_set, a_set),
    )


def age_range_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    # Enforced by the population pre-filter; kept for diagnostic completeness.
    return QuestionScore.symmetric(0.0)


def preference_curve(kind: object, raw: float) -> float:
    if kind == "same":
        return 1.0 if raw >= SAME_THRESHOLD else raw / SAME_THRESHOLD
    if kind == "similar":
        return raw
    if kind == "different":
        return 1.0 if raw <= DIFFERENT_THRESHOLD else (1.0 - raw) / (1.0 - DIFFERENT_THRESHOLD)
    raise MalformedResponseError(f"unsupported same/similar/different preference {kind!r}")


def same_similar_different_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_val, b_val = _answers(spec, a, b, cfg)
    uncertain = UNCERTAIN_ANSWER in (a_val, b_val)
    raw = 0.0
    if not uncertain:
        if isinstance(a_val, str) and isinstance(b_val, str):
            encoding = spec.ordinal_encoding or {}
            raw = _clamp(1.0 - abs(encoding[a_val] - encoding[b_val]) / spec.encoded_range)
        elif isinstance(a_val, str) or isinstance(b_val, str):
            raise MalformedResponseError("cannot compare an encoded answer with a numeric one")
        else:
            raw = likert_similarity(a_val, b_val, cfg)

    def side(preference: Preference) -> float:
        if isinstance(preference, NoPreference):
            return 1.0
        if uncertain:
            return cfg.uncertainty_similarity
        return _clamp(preference_curve(_preference_kind(preference), raw))

    return QuestionScore.from_sides(side(a.preference), side(b.preference))


def directional_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_val, b_val = _answers(spec, a, b, cfg)
    uncertain = UNCERTAIN_ANSWER in (a_val, b_val)

    def side(preference: Preference, own, partner) -> float:
        if isinstance(preference, NoPreference):
            return 1.0
        if uncertain:
            return cfg.uncertainty_similarity
        return directional_satisfaction(own, partner, preference, cfg)

    return QuestionScore.from_sides(side(a.preference, a_val, b_val), side(b.preference, b_val, a_val))


def binary_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_ans, b_ans = _answers(spec, a, b, cfg)
    return QuestionScore.symmetric(1.0 if a_ans == b_ans else 0.0)


def special_case_similarity(spec: QuestionSpec, a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    return SPECIAL_CASE_STRATEGIES[spec.special_case](a, b, cfg)


SIMILARITY_STRATEGIES: dict[QuestionType, ScoreFn] = {
    QuestionType.NUMERIC_INTERVAL: numeric_interval_similarity,
    QuestionType.ORDINAL: ordinal_similarity,
    QuestionType.CATEGORICAL_EXACT: categorical_exact_similarity,
    QuestionType.CATEGORICAL_SET_PREFERENCE: categorical_set_similarity,
    QuestionType.MULTI_SELECT: multi_select_similarity,
    QuestionType.AGE_RANGE: age_range_similarity,
    QuestionType.SAME_SIMILAR_DIFFERENT: same_similar_different_similarity,
    QuestionType.DIRECTIONAL: directional_similarity,
    QuestionType.BINARY: binary_similarity,
    QuestionType.SPECIAL: special_case_similarity,
}

_unregistered = set(QuestionType) - set(SIMILARITY_STRATEGIES)
if _unregistered:
    raise RuntimeError(f"question types without a similarity strategy: {sorted(t.value for t in _unregistered)}")


def question_similarity(
    spec: QuestionSpec,
    a: Response | None,
    b: Response | None,
    cfg: MatchingConfig,
    *,
    pair: tuple[str, str] | None = None,
) -> QuestionScore:
    if spec.hard_filter:
        return QuestionScore.symmetric(0.0)
    if a is None or b is None:
        return QuestionScore.symmetric(cfg.neutral_similarity)
    try:
        result = SIMILARITY_STRATEGIES[spec.question_type](spec, a, b, cfg)
    except MalformedResponseError as exc:
        logger.warning("[similarity] malformed response question=%s pair=%s: %s", spec.question_id, pair, exc)
        return QuestionScore.symmetric(cfg.neutral_similarity)
    return QuestionScore(_clamp(result.similarity), _clamp(result.a_satisfaction), _clamp(result.b_satisfaction))


def similarity(
    question_id: str,
    a: Response | None,
    b: Response | None,
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
) -> float:
    reg = registry if registry is not None else QUESTION_REGISTRY
    spec = reg.get(question_id)
    if spec is None:
        raise KeyError(f"Unknown question id: {question_id}")
    return question_similarity(spec, a, b, cfg).similarity


def dyad_similarities(
    user_a: User,
    user_b: User,
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
) -> dict[str, QuestionScore]:
    """Score every registered question at least one of the two users answered."""
    reg = registry if registry is not None else QUESTION_REGISTRY
    pair = (user_a.user_id, user_b.user_id)
    out: dict[str, QuestionScore] = {}
    for question_id, spec in reg.items():
        a = user_a.response(question_id)
        b = user_b.response(question_id)
        if a is None and b is None:
            continue
        out[question_id] = question_similarity(spec, a, b, cfg, pair=pair)
    return out
