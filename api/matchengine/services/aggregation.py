from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from ..config import MatchingConfig
from ..models import QuestionScore, User
from ..questions import QUESTION_REGISTRY, QuestionSpec, Section


@dataclass(frozen=True)
class DirectionalScore:
    """One user's evaluation of a candidate partner (0-100)."""

    evaluator_id: str
    candidate_id: str
    total: float
    section_scores: dict[str, float] = field(default_factory=dict)
    question_scores: dict[str, float] = field(default_factory=dict)
    question_weights: dict[str, float] = field(default_factory=dict)


def section_average(weighted_sum: float, weight_total: float, answered: int, cfg: MatchingConfig) -> float:
    if answered == 0:
        return cfg.neutral_similarity
    if weight_total <= 0:
        # Every answered question was weighted zero: the evaluator is satisfied by default.
        return 1.0
    return weighted_sum / weight_total


def directional_score(
    evaluator: User,
    candidate: User,
    similarities: Mapping[str, QuestionScore],
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
) -> DirectionalScore:
    reg = registry if registry is not None else QUESTION_REGISTRY
    weighted_sums = {section: 0.0 for section in Section}
    weight_totals = {section: 0.0 for section in Section}
    answered = {section: 0 for section in Section}
    question_scores: dict[str, float] = {}
    question_weights: dict[str, float] = {}

    for question_id, spec in reg.items():
        if spec.hard_filter:
            continue
        response = evaluator.response(question_id)
        if response is None or response.is_dealbreaker:
            continue
        score = similarities.get(question_id)
        sim = score.similarity if score is not None else cfg.neutral_similarity
        weight = cfg.importance_weight(response.importance)

        question_scores[question_id] = sim
        question_weights[question_id] = weight
        weighted_sums[spec.section] += sim * weight
        weight_totals[spec.section] += weight
        answered[spec.section] += 1

    section_scores: dict[str, float] = {}
    total = 0.0
    for section in Section:
        avg = section_average(weighted_sums[section], weight_totals[section], answered[section], cfg)
        section_scores[section.value] = round(avg, 6)
        total += avg * cfg.section_weight(section)

    return DirectionalScore(
        evaluator_id=evaluator.user_id,
        candidate_id=candidate.user_id,
        total=round(total * 100.0, 6),
        section_scores=section_scores,
        question_scores=question_scores,
        question_weights=question_weights,
    )
