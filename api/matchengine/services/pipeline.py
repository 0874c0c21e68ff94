from __future__ import annotations

import itertools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..config import MatchingConfig
from ..models import User
from ..questions import QUESTION_REGISTRY, QuestionSpec
from .aggregation import directional_score
from .assignment import EligiblePair, MatchPair, UnmatchedUser, solve_assignment, validate_matching
from .calibration import compute_calibration_report, percentile_summary, score_distribution, summarize_scores
from .eligibility import best_scores, check_eligibility
from .hard_filters import FILTER_KINDS, HardFilterResult, check_hard_filters
from .pair_score import PairScore, build_pair_score
from .responses import build_users
from .similarity import dyad_similarities

logger = logging.getLogger(__name__)


@dataclass
class DyadOutcome:
    user_a: str
    user_b: str
    hard_filter: HardFilterResult | None = None
    pair: PairScore | None = None
    error: str | None = None


@dataclass
class MatchingRunResult:
    matches: list[MatchPair]
    unmatched: list[UnmatchedUser]
    eligible_pairs: list[EligiblePair]
    pair_scores: list[PairScore]
    diagnostics: dict[str, Any] = field(default_factory=dict)

    def to_dict(self, include_pairs: bool = False) -> dict[str, Any]:
        out: dict[str, Any] = {
            "matches": [m.to_dict() for m in self.matches],
            "unmatched": [u.to_dict() for u in self.unmatched],
            "diagnostics": self.diagnostics,
        }
        if include_pairs:
            out["pair_scores"] = [p.to_dict() for p in self.pair_scores]
        return out


def score_dyad(
    user_a: User,
    user_b: User,
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
) -> DyadOutcome:
    filtered = check_hard_filters(user_a, user_b, registry)
    if not filtered.passed:
        return DyadOutcome(user_a.user_id, user_b.user_id, hard_filter=filtered)

    similarities = dyad_similarities(user_a, user_b, cfg, registry)
    a_to_b = directional_score(user_a, user_b, similarities, cfg, registry)
    b_to_a = directional_score(user_b, user_a, similarities, cfg, registry)
    pair = build_pair_score(a_to_b, b_to_a, similarities, cfg, registry)
    return DyadOutcome(user_a.user_id, user_b.user_id, hard_filter=filtered, pair=pair)


def _score_dyad_isolated(
    user_a: User,
    user_b: User,
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None,
) -> DyadOutcome:
    try:
        return score_dyad(user_a, user_b, cfg, registry)
    except Exception as exc:
        logger.exception("[pipeline] dyad failed user_a=%s user_b=%s", user_a.user_id, user_b.user_id)
        return DyadOutcome(user_a.user_id, user_b.user_id, error=f"{type(exc).__name__}: {exc}")


def score_all_dyads(
    users: list[User],
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
    workers: int = 1,
) -> list[DyadOutcome]:
    dyads = list(itertools.combinations(users, 2))
    if workers <= 1 or len(dyads) < 2:
        return [_score_dyad_isolated(a, b, cfg, registry) for a, b in dyads]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() yields in submission order.
        return list(pool.map(lambda d: _score_dyad_isolated(d[0], d[1], cfg, registry), dyads))


def _check_unique_ids(users: list[User]) -> None:
    seen: set[str] = set()
    dupes: set[str] = set()
    for user in users:
        if user.user_id in seen:
            dupes.add(user.user_id)
        seen.add(user.user_id)
    if dupes:
        raise ValueError(f"Duplicate user ids in matching input: {sorted(dupes)}")


def run_matching(
    users: list[User],
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
    *,
    workers: int | None = None,
    skipped_user_ids: list[str] | None = None,
) -> MatchingRunResult:
    """Score every dyad, threshold, and solve the global assignment for one snapshot."""
    reg = registry if registry is not None else QUESTION_REGISTRY
    _check_unique_ids(users)
    started = time.perf_counter()
    population = sorted(users, key=lambda u: u.user_id)
    worker_count = workers if workers is not None else cfg.workers
    logger.info("[pipeline] run start users=%d workers=%d config=%s", len(population), worker_count, cfg.version)

    outcomes = score_all_dyads(population, cfg, reg, worker_count)

    hard_filtered = {kind: 0 for kind in FILTER_KINDS}
    filtered_pairs: list[dict[str, Any]] = []
    failed_dyads: list[dict[str, str]] = []
    scored: list[PairScore] = []
    for outcome in outcomes:
        if outcome.error is not None:
            failed_dyads.append({"user_a": outcome.user_a, "user_b": outcome.user_b, "error": outcome.error})
        elif outcome.pair is None:
            hard_filtered[outcome.hard_filter.kind] += 1
            filtered_pairs.append(
                {
                    "user_a": outcome.user_a,
                    "user_b": outcome.user_b,
                    "kind": outcome.hard_filter.kind,
                    "reason": outcome.hard_filter.reason,
                    "questions": list(outcome.hard_filter.failed_questions),
                }
            )
        else:
            scored.append(outcome.pair)

    # Best scores come from the full scored set before any thresholding.
    best = best_scores((p.user_a, p.user_b, p.score) for p in scored)

    eligible: list[EligiblePair] = []
    ineligible_pairs: list[dict[str, Any]] = []
    failed_absolute = failed_relative_a = failed_relative_b = 0
    for pair in scored:
        result = check_eligibility(pair.score, pair.a_to_b, pair.b_to_a, best[pair.user_a], best[pair.user_b], cfg)
        if result.is_eligible:
            eligible.append(EligiblePair(pair.user_a, pair.user_b, pair.score, pair.a_to_b, pair.b_to_a))
            continue
        failed_absolute += 0 if result.passed_absolute else 1
        failed_relative_a += 0 if result.passed_relative_a else 1
        failed_relative_b += 0 if result.passed_relative_b else 1
        ineligible_pairs.append({"user_a": pair.user_a, "user_b": pair.user_b, "pair_score": pair.score, "reasons": result.reasons})

    scored_ids = {p.user_a for p in scored} | {p.user_b for p in scored}
    eligible_ids = {p.user_a for p in eligible} | {p.user_b for p in eligible}
    perfectionists = sorted(scored_ids - eligible_ids)

    matches, unmatched = solve_assignment(
        [u.user_id for u in population],
        eligible,
        weight_scale=cfg.solver_weight_scale,
        max_cardinality=cfg.solver_max_cardinality,
        compatible_user_ids=scored_ids,
    )
    valid, validation_errors = validate_matching(matches)
    if not valid:
        logger.error("[pipeline] assignment failed validation: %s", validation_errors)

    pair_values = [p.score for p in scored]
    match_values = [m.pair_score for m in matches]
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 3)

    diagnostics: dict[str, Any] = {
        "config_version": cfg.version,
        "total_users": len(population),
        "skipped_users": list(skipped_user_ids or []),
        "hard_filtered_pairs": hard_filtered,
        "filtered_pairs": filtered_pairs,
        "pairs_scored": len(scored),
        "failed_dyads": failed_dyads,
        "average_raw_score": round(sum(pair_values) / len(pair_values), 6) if pair_values else 0.0,
        "eligible_pairs": len(eligible),
        "failed_absolute": failed_absolute,
        "failed_relative_a": failed_relative_a,
        "failed_relative_b": failed_relative_b,
        "ineligible_pairs": ineligible_pairs,
        "perfectionists": perfectionists,
        "matches_created": len(matches),
        "unmatched_users": len(unmatched),
        "eligible_pair_score_stats": summarize_scores([p.pair_score for p in eligible]),
        "match_score_stats": summarize_scores(match_values),
        "score_distribution": score_distribution(pair_values),
        "percentiles": percentile_summary(pair_values),
        "calibration": compute_calibration_report(pair_values, best, match_values),
        "validation": {"is_valid": valid, "errors": validation_errors},
        "execution_time_ms": elapsed_ms,
    }
    logger.info(
        "[pipeline] run done users=%d scored=%d eligible=%d matches=%d failed_dyads=%d elapsed_ms=%s",
        len(population),
        len(scored),
        len(eligible),
        len(matches),
        len(failed_dyads),
        elapsed_ms,
    )
    return MatchingRunResult(
        matches=matches,
        unmatched=unmatched,
        eligible_pairs=eligible,
        pair_scores=scored,
        diagnostics=diagnostics,
    )


def run_matching_from_payloads(
    payloads: list[Mapping[str, Any]],
    cfg: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
    *,
    workers: int | None = None,
) -> MatchingRunResult:
    users, skipped = build_users(payloads, registry, scale_min=cfg.likert_min, scale_max=cfg.likert_max)
    return run_matching(users, cfg, registry, workers=workers, skipped_user_ids=skipped)


def compare_runs(
    payloads: list[Mapping[str, Any]],
    baseline: MatchingConfig,
    candidate: MatchingConfig,
    registry: Mapping[str, QuestionSpec] | None = None,
) -> dict[str, Any]:
    """Run one snapshot under two tunings and report how the assignments differ."""
    base = run_matching_from_payloads(payloads, baseline, registry)
    alt = run_matching_from_payloads(payloads, candidate, registry)

    base_pairs = {(m.user_a, m.user_b) for m in base.matches}
    alt_pairs = {(m.user_a, m.user_b) for m in alt.matches}
    union = base_pairs | alt_pairs
    shared = base_pairs & alt_pairs

    return {
        "baseline": base.to_dict(),
        "candidate": alt.to_dict(),
        "comparison": {
            "shared_matches": len(shared),
            "only_baseline": [list(p) for p in sorted(base_pairs - alt_pairs)],
            "only_candidate": [list(p) for p in sorted(alt_pairs - base_pairs)],
            "match_overlap": round(len(shared) / len(union), 6) if union else 1.0,
            "matches_created_delta": len(alt.matches) - len(base.matches),
            "eligible_pairs_delta": alt.diagnostics["eligible_pairs"] - base.diagnostics["eligible_pairs"],
        },
    }
