from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..models import AgeRange, NoPreference, Response, Specific, User
from ..questions import QUESTION_REGISTRY, UNCERTAIN_ANSWER, QuestionSpec

ANY_GENDER = "anyone"

FILTER_GENDER = "gender"
FILTER_AGE = "age"
FILTER_DEALBREAKER = "dealbreaker"
FILTER_KINDS = (FILTER_GENDER, FILTER_AGE, FILTER_DEALBREAKER)


@dataclass(frozen=True)
class HardFilterResult:
    passed: bool
    kind: str | None = None
    reason: str | None = None
    failed_questions: tuple[str, ...] = field(default_factory=tuple)


PASSED = HardFilterResult(passed=True)


def _accepts(accepted: frozenset[str], gender: str | None) -> bool:
    if not gender or not accepted:
        return False
    return ANY_GENDER in accepted or gender in accepted


def gender_compatible(user_a: User, user_b: User) -> bool:
    return _accepts(user_a.accepted_genders, user_b.gender) and _accepts(user_b.accepted_genders, user_a.gender)


def age_compatible(user_a: User, user_b: User) -> bool:
    # Unstated ranges and unknown ages do not restrict the pair.
    if user_a.age_range is not None and user_b.age is not None and not user_a.age_range.contains(user_b.age):
        return False
    if user_b.age_range is not None and user_a.age is not None and not user_b.age_range.contains(user_a.age):
        return False
    return True


def _numeric(spec: QuestionSpec, value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and spec.ordinal_encoding and value in spec.ordinal_encoding:
        return float(spec.ordinal_encoding[value])
    return None


def satisfies_dealbreaker(spec: QuestionSpec, owner: Response, partner: Response) -> bool:
    """Whether ``partner``'s answer meets the preference ``owner`` marked as a dealbreaker."""
    if isinstance(owner.preference, NoPreference):
        return True
    if partner.answer is None or partner.answer == UNCERTAIN_ANSWER:
        return False

    kind = owner.preference.value if isinstance(owner.preference, Specific) else None
    partner_answer = partner.answer

    if isinstance(kind, AgeRange):
        age = partner_answer.get("age") if isinstance(partner_answer, Mapping) else partner_answer
        return isinstance(age, int) and kind.contains(age)

    if isinstance(kind, frozenset):
        if isinstance(partner_answer, frozenset):
            return bool(partner_answer & kind)
        return partner_answer in kind

    own_num = _numeric(spec, owner.answer)
    partner_num = _numeric(spec, partner_answer)
    if own_num is not None and partner_num is not None:
        diff = partner_num - own_num
        if kind == "same":
            return diff == 0
        if kind == "similar":
            return abs(diff) <= 1
        if kind == "different":
            return abs(diff) >= 2
        if kind == "more":
            return diff > 0
        if kind == "less":
            return diff < 0

    if kind == "same":
        return partner_answer == owner.answer

    # Preference shapes without a rule do not veto the pair.
    return True


def dealbreaker_conflicts(
    user_a: User,
    user_b: User,
    registry: Mapping[str, QuestionSpec] | None = None,
) -> list[str]:
    reg = registry if registry is not None else QUESTION_REGISTRY
    failed: list[str] = []
    for question_id, spec in reg.items():
        if spec.hard_filter:
            continue
        a = user_a.response(question_id)
        b = user_b.response(question_id)
        if a is None or b is None:
            continue
        if a.is_dealbreaker and not satisfies_dealbreaker(spec, a, b):
            failed.append(question_id)
        elif b.is_dealbreaker and not satisfies_dealbreaker(spec, b, a):
            failed.append(question_id)
    return failed


def check_hard_filters(
    user_a: User,
    user_b: User,
    registry: Mapping[str, QuestionSpec] | None = None,
) -> HardFilterResult:
    if not gender_compatible(user_a, user_b):
        return HardFilterResult(passed=False, kind=FILTER_GENDER, reason="Gender incompatibility")
    if not age_compatible(user_a, user_b):
        return HardFilterResult(passed=False, kind=FILTER_AGE, reason="Outside preferred age range")
    failed = dealbreaker_conflicts(user_a, user_b, registry)
    if failed:
        return HardFilterResult(
            passed=False,
            kind=FILTER_DEALBREAKER,
            reason=f"Dealbreaker conflict on {', '.join(failed)}",
            failed_questions=tuple(failed),
        )
    return PASSED
