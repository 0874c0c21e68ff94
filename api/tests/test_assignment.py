from matchengine.services.assignment import (
    REASON_BEST_TAKEN,
    REASON_NO_COMPATIBLE,
    REASON_NO_ELIGIBLE,
    EligiblePair,
    MatchPair,
    solve_assignment,
    validate_matching,
)


def _pair(a: str, b: str, score: float) -> EligiblePair:
    return EligiblePair(a, b, score, score, score)


def test_unique_maximum_weight_matching():
    pairs = [_pair("a", "b", 90), _pair("c", "d", 90), _pair("a", "c", 95), _pair("b", "d", 50)]
    matched, unmatched = solve_assignment(["a", "b", "c", "d"], pairs)
    assert [(m.user_a, m.user_b) for m in matched] == [("a", "b"), ("c", "d")]
    assert unmatched == []
    ids = [u for m in matched for u in (m.user_a, m.user_b)]
    assert len(ids) == len(set(ids))


def test_prefers_more_matches_over_one_heavy_edge():
    pairs = [_pair("a", "b", 60), _pair("b", "c", 99), _pair("c", "d", 60)]
    matched, _ = solve_assignment(["a", "b", "c", "d"], pairs)
    assert [(m.user_a, m.user_b) for m in matched] == [("a", "b"), ("c", "d")]


def test_output_orientation_is_canonical():
    pair = EligiblePair("z", "m", 70, 80, 60)
    matched, _ = solve_assignment(["m", "z"], [pair])
    assert matched[0].user_a == "m"
    assert matched[0].a_to_b == 60
    assert matched[0].b_to_a == 80


def test_no_eligible_edges_is_not_an_error():
    matched, unmatched = solve_assignment(["a", "b"], [])
    assert matched == []
    assert [u.reason for u in unmatched] == [REASON_NO_ELIGIBLE, REASON_NO_ELIGIBLE]


def test_unmatched_reasons():
    pairs = [_pair("a", "b", 90), _pair("a", "c", 70)]
    matched, unmatched = solve_assignment(["a", "b", "c", "d"], pairs, compatible_user_ids={"a", "b", "c"})
    assert [(m.user_a, m.user_b) for m in matched] == [("a", "b")]
    reasons = {u.user_id: u for u in unmatched}
    assert reasons["c"].reason == REASON_BEST_TAKEN
    assert reasons["c"].best_possible_match_id == "a"
    assert reasons["c"].best_possible_score == 70
    assert reasons["d"].reason == REASON_NO_COMPATIBLE


def test_validate_matching():
    ok, errors = validate_matching([MatchPair("a", "b", 70, 70, 70)])
    assert ok and errors == []

    ok, errors = validate_matching([MatchPair("a", "b", 70, 70, 70), MatchPair("a", "c", 120, 70, 70), MatchPair("d", "d", 50, 50, 50)])
    assert not ok
    assert "User a appears in multiple matches" in errors
    assert "User d is matched with themselves" in errors
    assert any(e.startswith("Invalid pair score 120") for e in errors)
