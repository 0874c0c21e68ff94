import pytest

from matchengine.questions import (
    QUESTION_REGISTRY,
    QuestionSpec,
    QuestionType,
    Section,
    SpecialCase,
    build_registry,
    get_question,
    scored_questions,
)
from matchengine.services.similarity import SIMILARITY_STRATEGIES
from matchengine.services.special_cases import SPECIAL_CASE_STRATEGIES


def test_catalog_covers_every_question_once():
    assert len(QUESTION_REGISTRY) == 37
    assert "q9a" in QUESTION_REGISTRY and "q9b" in QUESTION_REGISTRY
    assert "q9" not in QUESTION_REGISTRY


def test_hard_filter_questions_are_excluded_from_scoring():
    hard = {qid for qid, spec in QUESTION_REGISTRY.items() if spec.hard_filter}
    assert hard == {"q1", "q2", "q4"}
    assert all(not spec.hard_filter for spec in scored_questions())


def test_special_cases_are_tagged_on_the_spec():
    assert get_question("q21").special_case == SpecialCase.LOVE_LANGUAGES
    assert get_question("q25").special_case == SpecialCase.CONFLICT_STYLE
    assert get_question("q29").special_case == SpecialCase.SLEEP_SCHEDULE
    assert get_question("q7").special_case is None


def test_every_type_and_special_case_has_a_strategy():
    assert set(SIMILARITY_STRATEGIES) == set(QuestionType)
    assert set(SPECIAL_CASE_STRATEGIES) == set(SpecialCase)


def test_ordinal_encoding_range():
    assert get_question("q12").encoded_range == 3
    assert get_question("q26").flexible_answer == "whatever_feels_natural"


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        QUESTION_REGISTRY["q99"] = get_question("q7")  # type: ignore[index]


def test_duplicate_question_ids_rejected():
    spec = QuestionSpec("x1", Section.LIFESTYLE, QuestionType.BINARY)
    with pytest.raises(ValueError):
        build_registry([spec, spec])


def test_special_type_requires_special_case_tag():
    with pytest.raises(ValueError):
        QuestionSpec("x1", Section.PERSONALITY, QuestionType.SPECIAL)
    with pytest.raises(ValueError):
        QuestionSpec("x2", Section.PERSONALITY, QuestionType.BINARY, special_case=SpecialCase.SLEEP_SCHEDULE)


def test_ordinal_requires_encoding():
    with pytest.raises(ValueError):
        QuestionSpec("x1", Section.LIFESTYLE, QuestionType.ORDINAL)
    with pytest.raises(ValueError):
        QuestionSpec("x2", Section.LIFESTYLE, QuestionType.BINARY, ordinal_encoding={"a": 1, "b": 2})
