from __future__ import annotations

import logging
from typing import Any, Mapping

from ..models import (
    NO_PREFERENCE,
    AgeRange,
    Importance,
    LoveLanguageAnswer,
    Preference,
    Response,
    Specific,
    User,
)
from ..questions import (
    ACCEPTED_GENDERS_QUESTION,
    AGE_QUESTION,
    GENDER_QUESTION,
    QUESTION_REGISTRY,
    UNCERTAIN_ANSWER,
    QuestionSpec,
    QuestionType,
    SpecialCase,
)

logger = logging.getLogger(__name__)

SLEEP_SCHEDULES = {"early_bird", "night_owl", "flexible", "irregular"}
MAX_CONFLICT_STYLES = 2
_NO_PREFERENCE_TOKENS = {"doesnt_matter", "doesntmatter", "doesn't matter", "no_preference", "any"}
# Questionnaire clients may send the weight itself instead of the level name.
_NUMERIC_IMPORTANCE = {
    0.0: Importance.NOT_IMPORTANT,
    0.5: Importance.SOMEWHAT_IMPORTANT,
    1.0: Importance.IMPORTANT,
    2.0: Importance.VERY_IMPORTANT,
}
_YES = {"yes", "true", "y"}
_NO = {"no", "false", "n"}

_GENDER_ALIASES = {
    "man": "men",
    "woman": "women",
    "non-binary": "non_binary",
    "nonbinary": "non_binary",
}


class MalformedResponseError(ValueError):
    pass


def _norm_token(value: Any) -> str:
    if not isinstance(value, str):
        raise MalformedResponseError(f"expected a string, got {type(value).__name__}")
    token = value.strip().lower()
    if not token:
        raise MalformedResponseError("empty string answer")
    return token


def _token_set(value: Any) -> frozenset[str]:
    if isinstance(value, str):
        raise MalformedResponseError("expected a list of options, got a string")
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise MalformedResponseError(f"expected a list of options, got {type(value).__name__}")
    return frozenset(_norm_token(v) for v in value)


def normalize_gender(value: Any) -> str | None:
    if value is None:
        return None
    v = str(value).strip().lower()
    if not v:
        return None
    return _GENDER_ALIASES.get(v, v)


def is_uncertain(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() == UNCERTAIN_ANSWER


def coerce_likert(value: Any, scale_min: int = 1, scale_max: int = 5) -> float | str:
    """Return a Likert value within the scale, or the uncertainty sentinel."""
    if is_uncertain(value):
        return UNCERTAIN_ANSWER
    if isinstance(value, bool):
        raise MalformedResponseError("boolean is not a Likert answer")
    if isinstance(value, (int, float)):
        v = float(value)
    elif isinstance(value, str) and value.strip().isdigit():
        v = float(value.strip())
    else:
        raise MalformedResponseError(f"expected a number, got {value!r}")
    if not scale_min <= v <= scale_max:
        raise MalformedResponseError(f"Likert answer {v} outside {scale_min}-{scale_max}")
    return v


def coerce_ordinal(spec: QuestionSpec, value: Any) -> str:
    token = _norm_token(value)
    if token == UNCERTAIN_ANSWER or token == spec.flexible_answer:
        return token
    if token not in (spec.ordinal_encoding or {}):
        raise MalformedResponseError(f"'{token}' is not an option of {spec.question_id}")
    return token


def coerce_age(value: Any) -> int:
    if isinstance(value, Mapping):
        value = value.get("age")
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise MalformedResponseError(f"expected an age, got {value!r}")
    try:
        age = int(value)
    except (TypeError, ValueError):
        raise MalformedResponseError(f"expected an age, got {value!r}")
    if age <= 0:
        raise MalformedResponseError(f"age must be positive, got {age}")
    return age


def coerce_binary(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    token = _norm_token(value)
    if token in _YES:
        return True
    if token in _NO:
        return False
    raise MalformedResponseError(f"expected yes/no, got {value!r}")


def coerce_love_languages(value: Any) -> LoveLanguageAnswer:
    if isinstance(value, LoveLanguageAnswer):
        return value
    if not isinstance(value, Mapping):
        raise MalformedResponseError("love language answer must have 'show' and 'receive'")
    return LoveLanguageAnswer(
        show=_token_set(value.get("show") or []),
        receive=_token_set(value.get("receive") or []),
    )


def coerce_conflict_styles(value: Any, vocabulary: set[str] | None = None) -> frozenset[str]:
    styles = frozenset({_norm_token(value)}) if isinstance(value, str) else _token_set(value)
    if not 1 <= len(styles) <= MAX_CONFLICT_STYLES:
        raise MalformedResponseError(f"expected 1-{MAX_CONFLICT_STYLES} conflict styles, got {len(styles)}")
    if vocabulary is not None:
        unknown = styles - vocabulary
        if unknown:
            raise MalformedResponseError(f"unknown conflict styles: {sorted(unknown)}")
    return styles


def coerce_sleep(value: Any) -> str:
    token = _norm_token(value).replace("-", "_")
    if token not in SLEEP_SCHEDULES:
        raise MalformedResponseError(f"unknown sleep schedule '{token}'")
    return token


def coerce_answer(spec: QuestionSpec, value: Any, *, scale_min: int = 1, scale_max: int = 5) -> Any:
    if value is None:
        raise MalformedResponseError("answer is null")
    qtype = spec.question_type
    if qtype in (QuestionType.NUMERIC_INTERVAL, QuestionType.DIRECTIONAL):
        return coerce_likert(value, scale_min, scale_max)
    if qtype == QuestionType.SAME_SIMILAR_DIFFERENT:
        if spec.ordinal_encoding is not None and isinstance(value, str) and not value.strip().isdigit():
            return coerce_ordinal(spec, value)
        return coerce_likert(value, scale_min, scale_max)
    if qtype == QuestionType.ORDINAL:
        return coerce_ordinal(spec, value)
    if qtype in (QuestionType.CATEGORICAL_EXACT, QuestionType.CATEGORICAL_SET_PREFERENCE):
        return _norm_token(value)
    if qtype == QuestionType.MULTI_SELECT:
        if spec.question_id == ACCEPTED_GENDERS_QUESTION and isinstance(value, str):
            return frozenset({_norm_token(value)})
        return _token_set(value)
    if qtype == QuestionType.AGE_RANGE:
        return coerce_age(value)
    if qtype == QuestionType.BINARY:
        return coerce_binary(value)
    if spec.special_case == SpecialCase.LOVE_LANGUAGES:
        return coerce_love_languages(value)
    if spec.special_case == SpecialCase.CONFLICT_STYLE:
        return coerce_conflict_styles(value)
    if spec.special_case == SpecialCase.SLEEP_SCHEDULE:
        return coerce_sleep(value)
    raise MalformedResponseError(f"no answer coercion for {spec.question_id}")


def parse_preference(raw: Any) -> Preference:
    if raw is None or raw is NO_PREFERENCE:
        return NO_PREFERENCE
    if isinstance(raw, Specific):
        return raw
    if isinstance(raw, Mapping):
        if raw.get("doesntMatter") or raw.get("doesnt_matter"):
            return NO_PREFERENCE
        if raw.get("value") is not None:
            return parse_preference(raw.get("value"))
        if isinstance(raw.get("type"), str) and raw.get("type") != "specific":
            return parse_preference(raw.get("type"))
        min_age = raw.get("minAge", raw.get("min_age"))
        max_age = raw.get("maxAge", raw.get("max_age"))
        if min_age is not None and max_age is not None:
            return Specific(AgeRange(int(min_age), int(max_age)))
        return Specific(dict(raw))
    if isinstance(raw, str):
        token = raw.strip().lower()
        if not token or token in _NO_PREFERENCE_TOKENS:
            return NO_PREFERENCE
        return Specific(token)
    if isinstance(raw, (list, tuple, set, frozenset)):
        return Specific(frozenset(str(v).strip().lower() for v in raw))
    return Specific(raw)


def parse_importance(raw: Any) -> Importance:
    if raw is None or raw == "":
        return Importance.SOMEWHAT_IMPORTANT
    if isinstance(raw, Importance):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        level = _NUMERIC_IMPORTANCE.get(float(raw))
        if level is None:
            logger.warning("Unknown importance weight %r; defaulting to somewhat_important", raw)
            return Importance.SOMEWHAT_IMPORTANT
        return level
    try:
        return Importance(str(raw).strip().lower())
    except ValueError:
        logger.warning("Unknown importance %r; defaulting to somewhat_important", raw)
        return Importance.SOMEWHAT_IMPORTANT


def parse_response(spec: QuestionSpec, raw: Any, *, user_id: str | None = None, scale_min: int = 1, scale_max: int = 5) -> Response | None:
    if not isinstance(raw, Mapping):
        raw = {"answer": raw}
    try:
        answer = coerce_answer(spec, raw.get("answer"), scale_min=scale_min, scale_max=scale_max)
        preference = parse_preference(raw.get("preference"))
    except (MalformedResponseError, TypeError, ValueError) as exc:
        logger.warning("[ingest] malformed response user_id=%s question=%s: %s", user_id, spec.question_id, exc)
        return None
    return Response(answer=answer, preference=preference, importance=parse_importance(raw.get("importance")))


def _derive_hard_filter_attributes(responses: dict[str, Response]) -> dict[str, Any]:
    attrs: dict[str, Any] = {}
    gender = responses.get(GENDER_QUESTION)
    if gender is not None:
        attrs["gender"] = normalize_gender(gender.answer)
    accepted = responses.get(ACCEPTED_GENDERS_QUESTION)
    if accepted is not None:
        attrs["accepted_genders"] = frozenset(g for g in (normalize_gender(v) for v in accepted.answer) if g)
    age = responses.get(AGE_QUESTION)
    if age is not None:
        attrs["age"] = age.answer
        if isinstance(age.preference, Specific) and isinstance(age.preference.value, AgeRange):
            attrs["age_range"] = age.preference.value
    return attrs


def build_user(payload: Mapping[str, Any], registry: Mapping[str, QuestionSpec] | None = None, *, scale_min: int = 1, scale_max: int = 5) -> User | None:
    """Build an immutable User from a submitted questionnaire payload.

    Returns None for payloads not explicitly marked as submitted.
    """
    reg = registry if registry is not None else QUESTION_REGISTRY
    if not isinstance(payload, Mapping):
        raise ValueError(f"user payload must be an object, got {type(payload).__name__}")
    user_id = str(payload.get("user_id") or payload.get("id") or "").strip()
    if not user_id:
        raise ValueError("user payload is missing user_id")
    if payload.get("submitted") is not True:
        logger.info("[ingest] skipping unsubmitted questionnaire user_id=%s", user_id)
        return None
    raw_responses = payload.get("responses") or {}
    if not isinstance(raw_responses, Mapping):
        raise ValueError(f"responses for user_id={user_id} must be an object, got {type(raw_responses).__name__}")

    responses: dict[str, Response] = {}
    for question_id, raw in raw_responses.items():
        spec = reg.get(question_id)
        if spec is None:
            logger.debug("[ingest] ignoring unknown question user_id=%s question=%s", user_id, question_id)
            continue
        response = parse_response(spec, raw, user_id=user_id, scale_min=scale_min, scale_max=scale_max)
        if response is not None:
            responses[question_id] = response

    return User(user_id=user_id, responses=responses, **_derive_hard_filter_attributes(responses))


def build_users(payloads: list[Mapping[str, Any]], registry: Mapping[str, QuestionSpec] | None = None, *, scale_min: int = 1, scale_max: int = 5) -> tuple[list[User], list[str]]:
    users: list[User] = []
    skipped: list[str] = []
    for index, payload in enumerate(payloads):
        label = f"payload[{index}]"
        if isinstance(payload, Mapping) and (payload.get("user_id") or payload.get("id")):
            label = str(payload.get("user_id") or payload.get("id")).strip()
        try:
            user = build_user(payload, registry, scale_min=scale_min, scale_max=scale_max)
        except ValueError as exc:
            logger.warning("[ingest] skipping invalid payload %s: %s", label, exc)
            skipped.append(label)
            continue
        if user is None:
            skipped.append(label)
            continue
        users.append(user)
    return users, skipped
