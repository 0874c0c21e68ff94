from matchengine.config import MatchingConfig
from matchengine.services.eligibility import best_scores, check_eligibility

CFG = MatchingConfig()


def test_all_thresholds_pass():
    out = check_eligibility(55, 55, 53, 85, 70, CFG)
    assert out.is_eligible is True
    assert out.reasons == []


def test_absolute_threshold_fails_regardless_of_relative():
    out = check_eligibility(45, 45, 45, 45, 45, CFG)
    assert out.is_eligible is False
    assert out.passed_relative_a and out.passed_relative_b
    assert out.reasons == ["Pair score 45.0 below minimum threshold 50"]


def test_relative_threshold_for_user_a():
    out = check_eligibility(60, 40, 80, 80, 80, CFG)
    assert out.is_eligible is False
    assert out.passed_absolute
    assert not out.passed_relative_a
    assert out.passed_relative_b
    assert out.reasons == ["User A score 40.0 below relative threshold 48.0 (0.6× best score 80.0)"]


def test_relative_threshold_for_user_b():
    out = check_eligibility(60, 80, 40, 80, 80, CFG)
    assert out.reasons == ["User B score 40.0 below relative threshold 48.0 (0.6× best score 80.0)"]


def test_each_failure_reported_independently():
    out = check_eligibility(10, 10, 10, 90, 90, CFG)
    assert len(out.reasons) == 3


def test_best_scores_use_every_pair():
    best = best_scores([("a", "b", 40.0), ("a", "c", 70.0), ("b", "c", 55.0)])
    assert best == {"a": 70.0, "b": 55.0, "c": 70.0}
