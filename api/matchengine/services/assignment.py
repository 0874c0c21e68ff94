from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable

import networkx as nx

from ..models import canonical_pair

logger = logging.getLogger(__name__)

REASON_NO_COMPATIBLE = "No compatible partners after hard filters"
REASON_NO_ELIGIBLE = "No eligible pairs (failed eligibility thresholds)"
REASON_BEST_TAKEN = "Best match was paired with someone else (globally suboptimal to match)"
REASON_ODD_COUNT = "Odd number of users with eligible pairs"


@dataclass(frozen=True)
class EligiblePair:
    user_a: str
    user_b: str
    pair_score: float
    a_to_b: float
    b_to_a: float


@dataclass(frozen=True)
class MatchPair:
    user_a: str
    user_b: str
    pair_score: float
    a_to_b: float
    b_to_a: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class UnmatchedUser:
    user_id: str
    reason: str
    best_possible_score: float | None = None
    best_possible_match_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _oriented(pair: EligiblePair) -> MatchPair:
    user_a, user_b = canonical_pair(pair.user_a, pair.user_b)
    if user_a == pair.user_a:
        return MatchPair(user_a, user_b, pair.pair_score, pair.a_to_b, pair.b_to_a)
    return MatchPair(user_a, user_b, pair.pair_score, pair.b_to_a, pair.a_to_b)


def build_graph(user_ids: Iterable[str], pairs: list[EligiblePair], weight_scale: int = 1000) -> nx.Graph:
    # Integer weights keep the blossom solve exact; sorted insertion keeps it reproducible.
    graph = nx.Graph()
    graph.add_nodes_from(sorted(user_ids))
    for pair in sorted(pairs, key=lambda p: canonical_pair(p.user_a, p.user_b)):
        graph.add_edge(pair.user_a, pair.user_b, weight=int(round(pair.pair_score * weight_scale)))
    return graph


def solve_assignment(
    user_ids: Iterable[str],
    pairs: list[EligiblePair],
    *,
    weight_scale: int = 1000,
    max_cardinality: bool = True,
    compatible_user_ids: set[str] | None = None,
) -> tuple[list[MatchPair], list[UnmatchedUser]]:
    """Maximum-weight matching over the eligible-pair graph.

    ``compatible_user_ids`` names users with at least one dyad that survived the
    hard filters; anyone outside it is reported as having no compatible partner.
    """
    users = sorted(set(user_ids))
    by_pair = {canonical_pair(p.user_a, p.user_b): p for p in pairs}

    matched: list[MatchPair] = []
    if by_pair:
        graph = build_graph({u for key in by_pair for u in key}, list(by_pair.values()), weight_scale)
        solution = nx.max_weight_matching(graph, maxcardinality=max_cardinality)
        matched = sorted(
            (_oriented(by_pair[canonical_pair(u, v)]) for u, v in solution),
            key=lambda m: (m.user_a, m.user_b),
        )
    else:
        logger.info("[assignment] no eligible pairs; every user stays unmatched")

    matched_ids = {m.user_a for m in matched} | {m.user_b for m in matched}

    best: dict[str, tuple[float, str]] = {}
    for (user_a, user_b), pair in sorted(by_pair.items()):
        for user_id, partner in ((user_a, user_b), (user_b, user_a)):
            current = best.get(user_id)
            if current is None or pair.pair_score > current[0]:
                best[user_id] = (pair.pair_score, partner)

    unmatched: list[UnmatchedUser] = []
    for user_id in users:
        if user_id in matched_ids:
            continue
        if compatible_user_ids is not None and user_id not in compatible_user_ids:
            unmatched.append(UnmatchedUser(user_id, REASON_NO_COMPATIBLE))
            continue
        if user_id not in best:
            unmatched.append(UnmatchedUser(user_id, REASON_NO_ELIGIBLE))
            continue
        best_score, best_partner = best[user_id]
        reason = REASON_BEST_TAKEN if best_partner in matched_ids else REASON_ODD_COUNT
        unmatched.append(UnmatchedUser(user_id, reason, best_score, best_partner))

    return matched, unmatched


def validate_matching(matched: list[MatchPair]) -> tuple[bool, list[str]]:
    errors: list[str] = []
    used: set[str] = set()
    for pair in matched:
        for user_id in (pair.user_a, pair.user_b):
            if user_id in used:
                errors.append(f"User {user_id} appears in multiple matches")
        used.update((pair.user_a, pair.user_b))
        if pair.user_a == pair.user_b:
            errors.append(f"User {pair.user_a} is matched with themselves")
        if not 0 <= pair.pair_score <= 100:
            errors.append(f"Invalid pair score {pair.pair_score} for {pair.user_a}-{pair.user_b}")
    return not errors, errors
