from matchengine.models import AgeRange, Importance, Response, Specific, User
from matchengine.services.hard_filters import (
    FILTER_AGE,
    FILTER_DEALBREAKER,
    FILTER_GENDER,
    check_hard_filters,
    gender_compatible,
    satisfies_dealbreaker,
)
from matchengine.questions import get_question


def _user(
    user_id: str,
    gender: str = "women",
    accepts: tuple[str, ...] = ("anyone",),
    age: int | None = None,
    age_range: AgeRange | None = None,
    **responses: Response,
):
    return User(
        user_id=user_id,
        responses=dict(responses),
        gender=gender,
        accepted_genders=frozenset(accepts),
        age=age,
        age_range=age_range,
    )


def _dealbreaker(answer, preference):
    return Response(answer=answer, preference=Specific(preference), importance=Importance.DEALBREAKER)


class TestGender:
    def test_mutual_acceptance_required(self):
        a = _user("a", gender="women", accepts=("men",))
        b = _user("b", gender="men", accepts=("women",))
        c = _user("c", gender="men", accepts=("men",))
        assert gender_compatible(a, b)
        assert not gender_compatible(a, c)

    def test_anyone_wildcard(self):
        a = _user("a", gender="non_binary", accepts=("anyone",))
        b = _user("b", gender="women", accepts=("non_binary",))
        assert gender_compatible(a, b)

    def test_missing_gender_fails(self):
        a = _user("a", gender=None)
        out = check_hard_filters(a, _user("b"))
        assert out.passed is False
        assert out.kind == FILTER_GENDER


class TestAge:
    def test_both_directions_checked(self):
        a = _user("a", age=24, age_range=AgeRange(22, 30))
        b = _user("b", age=35, age_range=AgeRange(20, 40))
        out = check_hard_filters(a, b)
        assert out.kind == FILTER_AGE

    def test_no_range_does_not_restrict(self):
        a = _user("a", age=24)
        b = _user("b", age=60)
        assert check_hard_filters(a, b).passed


class TestDealbreakers:
    def test_similar_within_one_point(self):
        a = _user("a", q7=_dealbreaker(1.0, "similar"))
        assert check_hard_filters(a, _user("b", q7=Response(answer=2.0))).passed
        out = check_hard_filters(a, _user("b", q7=Response(answer=4.0)))
        assert out.kind == FILTER_DEALBREAKER
        assert out.failed_questions == ("q7",)

    def test_checked_for_either_user(self):
        b = _user("b", q7=_dealbreaker(5.0, "same"))
        assert not check_hard_filters(_user("a", q7=Response(answer=4.0)), b).passed

    def test_uncertain_partner_answer_fails(self):
        a = _user("a", q7=_dealbreaker(3.0, "similar"))
        b = _user("b", q7=Response(answer="prefer_not_to_answer"))
        assert not check_hard_filters(a, b).passed

    def test_unanswered_question_skipped(self):
        a = _user("a", q7=_dealbreaker(3.0, "similar"))
        assert check_hard_filters(a, _user("b")).passed

    def test_set_membership(self):
        spec = get_question("q3")
        owner = _dealbreaker("city", frozenset({"city", "suburb"}))
        assert satisfies_dealbreaker(spec, owner, Response(answer="suburb"))
        assert not satisfies_dealbreaker(spec, owner, Response(answer="rural"))

    def test_multi_select_any_overlap(self):
        spec = get_question("q5")
        owner = _dealbreaker(frozenset({"a"}), frozenset({"x", "y"}))
        assert satisfies_dealbreaker(spec, owner, Response(answer=frozenset({"y", "z"})))
        assert not satisfies_dealbreaker(spec, owner, Response(answer=frozenset({"z"})))

    def test_directional_more(self):
        spec = get_question("q10")
        owner = _dealbreaker(3.0, "more")
        assert satisfies_dealbreaker(spec, owner, Response(answer=4.0))
        assert not satisfies_dealbreaker(spec, owner, Response(answer=3.0))

    def test_ordinal_uses_encoding(self):
        spec = get_question("q12")
        owner = _dealbreaker("marriage", "similar")
        assert satisfies_dealbreaker(spec, owner, Response(answer="serious_commitment"))
        assert not satisfies_dealbreaker(spec, owner, Response(answer="early_on"))

    def test_non_dealbreaker_importance_never_filters(self):
        a = _user("a", q7=Response(answer=1.0, preference=Specific("same"), importance=Importance.VERY_IMPORTANT))
        assert check_hard_filters(a, _user("b", q7=Response(answer=5.0))).passed
