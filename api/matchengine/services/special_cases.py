from __future__ import annotations

from typing import Callable

from ..config import MatchingConfig
from ..models import NoPreference, QuestionScore, Response, Specific
from ..questions import SpecialCase
from .responses import MalformedResponseError, coerce_conflict_styles, coerce_love_languages, coerce_sleep


def _fraction_found(items: frozenset[str], target: frozenset[str]) -> float:
    if not items:
        return 0.0
    return len(items & target) / len(items)


def love_language_similarity(a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_answer = coerce_love_languages(a.answer)
    b_answer = coerce_love_languages(b.answer)

    # How much of what A shows lands in what B likes to receive, and the mirror.
    show_fit = _fraction_found(a_answer.show, b_answer.receive)
    receive_fit = _fraction_found(b_answer.show, a_answer.receive)

    score = show_fit * cfg.love_language_show_weight + receive_fit * cfg.love_language_receive_weight
    return QuestionScore(similarity=score, a_satisfaction=receive_fit, b_satisfaction=show_fit)


def conflict_matrix_mean(a_styles: frozenset[str], b_styles: frozenset[str], cfg: MatchingConfig) -> float:
    matrix = cfg.conflict_matrix
    values = [matrix[x][y] for x in sorted(a_styles) for y in sorted(b_styles)]
    if not values:
        return 0.0
    return sum(values) / len(values)


def _conflict_satisfaction(preference, own: frozenset[str], partner: frozenset[str], cfg: MatchingConfig) -> float:
    if isinstance(preference, NoPreference):
        return 1.0
    kind = preference.value if isinstance(preference, Specific) else None
    if kind == "same":
        return 1.0 if own == partner else 0.0
    if kind == "compatible":
        overlap = len(own & partner) / max(len(own), len(partner))
        return cfg.conflict_overlap_weight * overlap + cfg.conflict_matrix_weight * conflict_matrix_mean(own, partner, cfg)
    raise MalformedResponseError(f"unknown conflict preference {kind!r}")


def conflict_style_similarity(a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    vocabulary = set(cfg.conflict_matrix)
    a_styles = coerce_conflict_styles(a.answer, vocabulary)
    b_styles = coerce_conflict_styles(b.answer, vocabulary)
    return QuestionScore.from_sides(
        _conflict_satisfaction(a.preference, a_styles, b_styles, cfg),
        _conflict_satisfaction(b.preference, b_styles, a_styles, cfg),
    )


def sleep_schedule_similarity(a: Response, b: Response, cfg: MatchingConfig) -> QuestionScore:
    a_schedule = coerce_sleep(a.answer)
    b_schedule = coerce_sleep(b.answer)
    if a_schedule == "flexible" or b_schedule == "flexible":
        return QuestionScore.symmetric(1.0)
    if a_schedule == "irregular" and b_schedule == "irregular":
        return QuestionScore.symmetric(cfg.sleep_both_irregular_similarity)
    if a_schedule == b_schedule:
        return QuestionScore.symmetric(1.0)
    return QuestionScore.symmetric(cfg.sleep_mismatch_similarity)


SPECIAL_CASE_STRATEGIES: dict[SpecialCase, Callable[[Response, Response, MatchingConfig], QuestionScore]] = {
    SpecialCase.LOVE_LANGUAGES: love_language_similarity,
    SpecialCase.CONFLICT_STYLE: conflict_style_similarity,
    SpecialCase.SLEEP_SCHEDULE: sleep_schedule_similarity,
}

_missing = set(SpecialCase) - set(SPECIAL_CASE_STRATEGIES)
if _missing:
    raise RuntimeError(f"special cases without a strategy: {sorted(m.value for m in _missing)}")
