from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from ..config import MatchingConfig


@dataclass(frozen=True)
class EligibilityResult:
    is_eligible: bool
    passed_absolute: bool
    passed_relative_a: bool
    passed_relative_b: bool
    absolute_threshold: float
    relative_threshold: float
    reasons: list[str] = field(default_factory=list)


def check_eligibility(
    pair_score: float,
    a_to_b: float,
    b_to_a: float,
    best_of_a: float,
    best_of_b: float,
    cfg: MatchingConfig,
) -> EligibilityResult:
    """Apply the absolute floor and both population-relative bars to one dyad.

    Every failing threshold contributes its own reason string.
    """
    t_min = cfg.absolute_threshold_min
    beta = cfg.relative_threshold_beta
    reasons: list[str] = []

    passed_absolute = pair_score >= t_min
    if not passed_absolute:
        reasons.append(f"Pair score {pair_score:.1f} below minimum threshold {t_min:g}")

    threshold_a = best_of_a * beta
    passed_relative_a = a_to_b >= threshold_a
    if not passed_relative_a:
        reasons.append(
            f"User A score {a_to_b:.1f} below relative threshold {threshold_a:.1f} ({beta:g}× best score {best_of_a:.1f})"
        )

    threshold_b = best_of_b * beta
    passed_relative_b = b_to_a >= threshold_b
    if not passed_relative_b:
        reasons.append(
            f"User B score {b_to_a:.1f} below relative threshold {threshold_b:.1f} ({beta:g}× best score {best_of_b:.1f})"
        )

    return EligibilityResult(
        is_eligible=passed_absolute and passed_relative_a and passed_relative_b,
        passed_absolute=passed_absolute,
        passed_relative_a=passed_relative_a,
        passed_relative_b=passed_relative_b,
        absolute_threshold=t_min,
        relative_threshold=beta,
        reasons=reasons,
    )


def best_scores(pair_scores: Iterable[tuple[str, str, float]]) -> dict[str, float]:
    """Highest pair score each user reached against anyone in the run."""
    best: dict[str, float] = {}
    for user_a, user_b, score in pair_scores:
        if score > best.get(user_a, float("-inf")):
            best[user_a] = score
        if score > best.get(user_b, float("-inf")):
            best[user_b] = score
    return best
