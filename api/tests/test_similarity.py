import logging

import pytest

from matchengine.config import DirectionalStrategy, MatchingConfig
from matchengine.models import NO_PREFERENCE, LoveLanguageAnswer, Response, Specific
from matchengine.questions import QuestionSpec, QuestionType, Section, get_question
from matchengine.services.directional import alignment_multiplier, directional_satisfaction
from matchengine.services.similarity import jaccard, question_similarity, similarity

CFG = MatchingConfig()
NUMERIC = QuestionSpec("n1", Section.LIFESTYLE, QuestionType.NUMERIC_INTERVAL)
BINARY = QuestionSpec("b1", Section.LIFESTYLE, QuestionType.BINARY)


def _r(answer, preference=None):
    if isinstance(preference, list):
        preference = frozenset(preference)
    pref = NO_PREFERENCE if preference is None else Specific(preference)
    return Response(answer=answer, preference=pref)


def _sim(qid, a, b, cfg=CFG):
    return question_similarity(get_question(qid), a, b, cfg)


class TestNumericInterval:
    def test_identical_answers_score_one(self):
        for value in (1, 3, 5):
            assert question_similarity(NUMERIC, _r(value), _r(value), CFG).similarity == 1.0

    def test_symmetric(self):
        ab = question_similarity(NUMERIC, _r(2), _r(4), CFG).similarity
        ba = question_similarity(NUMERIC, _r(4), _r(2), CFG).similarity
        assert ab == ba == 0.5

    def test_uncertain_answer_uses_uncertainty_constant(self):
        out = question_similarity(NUMERIC, _r("prefer_not_to_answer"), _r(3), CFG)
        assert out.similarity == pytest.approx(0.3)


class TestMultiSelect:
    def test_jaccard_exact_formula(self):
        assert _sim("q5", _r(["a", "b"]), _r(["b", "c"])).similarity == pytest.approx(1 / 3)

    def test_both_empty_is_full_match(self):
        assert _sim("q5", _r([]), _r([])).similarity == 1.0
        assert jaccard(frozenset(), frozenset()) == 1.0

    def test_set_preference_per_side(self):
        out = _sim("q5", _r(["hiking"], ["cooking"]), _r(["cooking"]))
        assert out.a_satisfaction == 1.0
        assert out.b_satisfaction == 1.0


class TestExactMatchTypes:
    def test_binary_equal_and_unequal(self):
        assert question_similarity(BINARY, _r(True), _r(True), CFG).similarity == 1.0
        assert question_similarity(BINARY, _r(True), _r(False), CFG).similarity == 0.0

    def test_binary_coerces_yes_no(self):
        assert question_similarity(BINARY, _r("Yes"), _r(True), CFG).similarity == 1.0
        assert question_similarity(BINARY, _r("no"), _r("y"), CFG).similarity == 0.0

    def test_categorical_exact(self):
        assert _sim("q11", _r("Christian"), _r("christian ")).similarity == 1.0
        assert _sim("q11", _r("christian"), _r("jewish")).similarity == 0.0

    def test_categorical_exact_ignores_preference(self):
        out = _sim("q11", _r("christian", "different"), _r("jewish"))
        assert out.similarity == 0.0


class TestNoPreferenceSentinel:
    @pytest.mark.parametrize(
        "qid,own,partner,pref",
        [
            ("q7", 1, 5, "same"),
            ("q3", "city", "suburb", "same"),
            ("q12", "marriage", "early_on", "same"),
            ("q10", 1, 5, "more"),
            ("q5", ["a"], ["b"], "same"),
            ("q25", "space", "direct", "same"),
        ],
    )
    def test_no_preference_side_is_fully_satisfied(self, qid, own, partner, pref):
        out = _sim(qid, _r(own), _r(partner, pref))
        assert out.a_satisfaction == 1.0


class TestOrdinal:
    def test_similar_uses_encoded_distance(self):
        out = _sim("q12", _r("marriage", "similar"), _r("connection", "similar"))
        assert out.similarity == pytest.approx(1 - 2 / 3)

    def test_flexible_answer_matches_anyone(self):
        out = _sim("q26", _r("whatever_feels_natural", "same"), _r("constant", "same"))
        assert out.similarity == 1.0

    def test_uncertain_partner_penalised(self):
        out = _sim("q9b", _r("never", "same"), _r("prefer_not_to_answer", "same"))
        assert out.similarity == pytest.approx(0.3)


class TestSameSimilarDifferent:
    def test_same_preference_curve(self):
        out = _sim("q7", _r(3, "same"), _r(3, "same"))
        assert out.similarity == 1.0

    def test_different_preference_rewards_distance(self):
        out = _sim("q7", _r(1, "different"), _r(5, "different"))
        assert out.similarity == 1.0

    def test_similar_is_raw_similarity(self):
        out = _sim("q7", _r(1, "similar"), _r(5, "similar"))
        assert out.similarity == 0.0


class TestDirectional:
    def test_hard_strategy_is_binary(self):
        out = _sim("q10", _r(2, "more"), _r(4, "less"))
        assert out.similarity == 1.0
        out = _sim("q10", _r(4, "more"), _r(2, "more"))
        assert out.a_satisfaction == 0.0
        assert out.b_satisfaction == 1.0

    def test_soft_strategy_scales_raw_similarity(self):
        soft = CFG.with_overrides({"directional_strategy": "soft"})
        assert soft.directional_strategy == DirectionalStrategy.SOFT
        out = _sim("q10", _r(2, "more"), _r(4, "less"), soft)
        assert out.similarity == pytest.approx(0.5)

    def test_soft_conflict_uses_beta(self):
        soft = CFG.with_overrides({"directional_strategy": "soft"})
        assert alignment_multiplier(4, 2, "more", soft) == soft.directional_beta
        assert directional_satisfaction(4, 2, Specific("more"), soft) == pytest.approx(0.5 * 0.7)

    def test_no_preference_is_satisfied(self):
        assert directional_satisfaction(5, 1, NO_PREFERENCE, CFG) == 1.0


class TestSpecialCases:
    def test_conflict_identical_single_style_compatible(self):
        out = _sim("q25", _r("compromise", "compatible"), _r("compromise", "compatible"))
        assert out.similarity == pytest.approx(1.0)

    def test_conflict_no_preference_side_satisfied(self):
        out = _sim("q25", _r("space"), _r("direct", "same"))
        assert out.a_satisfaction == 1.0
        assert out.b_satisfaction == 0.0
        assert out.similarity == pytest.approx(0.5)

    def test_conflict_same_requires_set_equality(self):
        out = _sim("q25", _r(["compromise", "space"], "same"), _r(["compromise"], "same"))
        assert out.similarity == 0.0

    def test_conflict_compatible_blends_overlap_and_matrix(self):
        out = _sim("q25", _r("space", "compatible"), _r("direct", "compatible"))
        assert out.similarity == pytest.approx(0.4 * 0.3)

    def test_love_languages_show_and_receive(self):
        a = _r(LoveLanguageAnswer(frozenset({"words", "touch"}), frozenset({"time", "gifts"})))
        b = _r(LoveLanguageAnswer(frozenset({"time", "acts"}), frozenset({"words", "touch"})))
        out = _sim("q21", a, b)
        assert out.similarity == pytest.approx(0.6 * 1.0 + 0.4 * 0.5)

    def test_love_languages_accept_raw_mapping(self):
        raw = {"show": ["words"], "receive": ["words"]}
        assert _sim("q21", _r(raw), _r(raw)).similarity == pytest.approx(1.0)

    def test_sleep_flexible_matches_anyone(self):
        assert _sim("q29", _r("flexible"), _r("night_owl")).similarity == 1.0

    def test_sleep_both_irregular(self):
        assert _sim("q29", _r("irregular"), _r("irregular")).similarity == pytest.approx(0.6)

    def test_sleep_mismatch(self):
        assert _sim("q29", _r("early_bird"), _r("night-owl")).similarity == pytest.approx(0.3)


class TestDispatcher:
    def test_missing_response_is_neutral(self):
        assert _sim("q7", None, _r(3)).similarity == 0.5

    def test_malformed_response_is_neutral_and_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            out = _sim("q7", _r("not-a-number", "same"), _r(3, "same"))
        assert out.similarity == 0.5
        assert "malformed response" in caplog.text

    def test_hard_filter_questions_score_zero(self):
        assert _sim("q4", _r(25), _r(30)).similarity == 0.0

    def test_unknown_question_raises(self):
        with pytest.raises(KeyError):
            similarity("q999", _r(1), _r(1), CFG)

    def test_soft_scores_are_capped_at_one(self):
        out = _sim("q10", _r(3, "similar"), _r(3, "similar"), CFG.with_overrides({"directional_strategy": "soft", "directional_alpha": 2.0}))
        assert out.similarity == 1.0
