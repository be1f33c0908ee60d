import math
from fractions import Fraction

import pytest

from models import tests as test_models
from models.tests import Question, QuestionOption
from services.test_taking_service import (
    MAX_TIME_SPENT_SECONDS,
    round_half_up_percent,
    score_answers,
    strip_answer_key,
    validate_submission,
)
from utils.errors import InvalidInput


def _mc(qid, correct, *others):
    options = [QuestionOption(text=correct, is_correct=True)]
    options += [QuestionOption(text=o, is_correct=False) for o in others]
    return Question(id=qid, type="multiple_choice", text=f"문항 {qid}", options=options)


def _essay(qid):
    return Question(id=qid, type="essay", text=f"서술 {qid}", sample_answer="모범 답안", options=[])


def _test(*questions):
    return test_models.Test(id=1, title="평가", description="설명", duration=20, passing_score=70,
                            questions=list(questions))


# ==========================================================
# 점수 반올림
# ==========================================================

@pytest.mark.parametrize("correct,total,expected", [
    (0, 5, 0),
    (1, 2, 50),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),    # 12.5 → 올림
    (3, 8, 38),    # 37.5 → 올림
    (3, 3, 100),
    (0, 0, 0),     # 문항 없음
])
def test_round_half_up_percent(correct, total, expected):
    assert round_half_up_percent(correct, total) == expected


def test_round_half_up_matches_exact_rational_rounding():
    for total in range(1, 41):
        for correct in range(total + 1):
            exact = math.floor(Fraction(100 * correct, total) + Fraction(1, 2))
            assert round_half_up_percent(correct, total) == exact


# ==========================================================
# 채점
# ==========================================================

def test_all_correct_multiple_choice_scores_100():
    test = _test(_mc(1, "B", "A"), _mc(2, "C", "A"))
    assert score_answers(test, {"1": "B", "2": "C"}) == (2, 2, 100)


def test_example_half_correct_scores_50():
    test = _test(_mc(1, "B", "A"), _mc(2, "C", "A"))
    assert score_answers(test, {"1": "B", "2": "A"}) == (1, 2, 50)


def test_match_is_exact_and_case_sensitive():
    test = _test(_mc(1, "Paris", "London"), _mc(2, "Seoul", "Busan"), _mc(3, "80", "443"))
    correct, total, score = score_answers(test, {"1": "paris", "2": "Seoul ", "3": "80"})
    assert (correct, total, score) == (1, 3, 33)


def test_essay_counts_in_denominator_but_is_never_auto_correct():
    test = _test(_mc(1, "B", "A"), _mc(2, "C", "A"), _essay(3))
    correct, total, score = score_answers(test, {"1": "B", "2": "C", "3": "모범 답안"})
    assert (correct, total) == (2, 3)
    assert score == 67


def test_missing_answers_are_wrong():
    test = _test(_mc(1, "B", "A"), _mc(2, "C", "A"))
    assert score_answers(test, {}) == (0, 2, 0)


def test_question_without_correct_option_is_always_wrong():
    broken = Question(id=2, type="multiple_choice", text="정답 없음",
                      options=[QuestionOption(text="A", is_correct=False),
                               QuestionOption(text="B", is_correct=False)])
    test = _test(_mc(1, "B", "A"), broken)
    assert score_answers(test, {"1": "B", "2": "A"}) == (1, 2, 50)


def test_test_without_questions_scores_zero():
    assert score_answers(_test(), {"1": "B"}) == (0, 0, 0)


# ==========================================================
# 응시용 변환 (정답 정보 제거)
# ==========================================================

def test_strip_answer_key_hides_correct_flags_and_sample_answers():
    test = _test(_mc(1, "B", "A"), _essay(2))
    dumped = strip_answer_key(test).model_dump()

    assert [q["id"] for q in dumped["questions"]] == [1, 2]
    assert dumped["questions"][0]["options"] == [{"text": "B"}, {"text": "A"}]
    assert dumped["questions"][1]["options"] == []
    for question in dumped["questions"]:
        assert "sample_answer" not in question
        for option in question["options"]:
            assert "is_correct" not in option


# ==========================================================
# 제출 형식 검증
# ==========================================================

def test_validate_submission_cleans_answers():
    answers, time_spent = validate_submission({1: "B", "2": None}, 95.7)
    assert answers == {"1": "B"}
    assert time_spent == 95


def test_validate_submission_accepts_upper_time_bound():
    _answers, time_spent = validate_submission({"1": "B"}, MAX_TIME_SPENT_SECONDS)
    assert time_spent == MAX_TIME_SPENT_SECONDS


@pytest.mark.parametrize("answers", [None, [], "B"])
def test_validate_submission_rejects_missing_answers(answers):
    with pytest.raises(InvalidInput):
        validate_submission(answers, 10)


def test_validate_submission_rejects_non_string_answer():
    with pytest.raises(InvalidInput):
        validate_submission({"1": 3}, 10)


@pytest.mark.parametrize("time_spent", [
    None, -1, "10", True, float("nan"), float("inf"), 1e300, MAX_TIME_SPENT_SECONDS + 1,
])
def test_validate_submission_rejects_bad_time(time_spent):
    with pytest.raises(InvalidInput):
        validate_submission({"1": "B"}, time_spent)
