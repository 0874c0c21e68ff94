from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..config import MatchingConfig
from ..models import QuestionScore
from ..questions import QUESTION_REGISTRY, QuestionSpec
from .aggregation import DirectionalScore


@dataclass(frozen=True)
class PairScore:
    user_a: str
    user_b: str
    a_to_b: float
    b_to_a: float
    score: float
    mutuality_penalty: float
    lowest_questions: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    asymmetric_questions: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_a": self.user_a,
            "user_b": self.user_b,
            "a_to_b": self.a_to_b,
            "b_to_a": self.b_to_a,
            "pair_score": self.score,
            "mutuality_penalty": self.mutuality_penalty,
            "lowest_questions": list(self.lowest_questions),
            "asymmetric_questions": list(self.asymmetric_questions),
        }


def combine_directional_scores(a_to_b: float, b_to_a: float, alpha: float) -> float:
    low = min(a_to_b, b_to_a)
    mean = (a_to_b + b_to_a) / 2.0
    return round(alpha * low + (1.0 - alpha) * mean, 6)


def mutuality_penalty(a_to_b: float, b_to_a: float, pair_score: float) -> float:
    high = max(a_to_b, b_to_a)
    if high <= 0:
        return 0.0
    return round((high - pair_score) / high, 6)


def lowest_questions(scores: Mapping[str, QuestionScore], n: int) -> list[dict[str, Any]]:
    ranked = sorted(scores.items(), key=lambda kv: (kv[1].similarity, kv[0]))
    return [{"question_id": qid, "similarity": round(s.similarity, 6)} for qid, s in ranked[:n]]


def asymmetric_questions(scores: Mapping[str, QuestionScore], n: int) -> list[dict[str, Any]]:
    ranked = sorted(
        ((qid, s) for qid, s in scores.items() if s.asymmetry > 0),
        key=lambda kv: (-kv[1].asymmetry, kv[0]),
    )
    return [
        {
            "question_id": qid,
            "a_satisfaction": round(s.a_satisfaction, 6),
            "b_satisfaction": round(s.b_satisfaction, 6),
            "difference": round(s.asymmetry, 6),
        }
        for qid, s in ranked[:n]
    ]


def build_pair_score(
    a_to_b: DirectionalScore,
    b_to_a: DirectionalScore,
    similarities: Mapping[str, QuestionScore],
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
) -> PairScore:
    reg = registry if registry is not None else QUESTION_REGISTRY
    scored = {qid: s for qid, s in similarities.items() if qid in reg and not reg[qid].hard_filter}

    score = combine_directional_scores(a_to_b.total, b_to_a.total, cfg.mutuality_alpha)
    return PairScore(
        user_a=a_to_b.evaluator_id,
        user_b=a_to_b.candidate_id,
        a_to_b=a_to_b.total,
        b_to_a=b_to_a.total,
        score=score,
        mutuality_penalty=mutuality_penalty(a_to_b.total, b_to_a.total, score),
        lowest_questions=tuple(lowest_questions(scored, cfg.diagnostic_top_n)),
        asymmetric_questions=tuple(asymmetric_questions(scored, cfg.diagnostic_top_n)),
    )
