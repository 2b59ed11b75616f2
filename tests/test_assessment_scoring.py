import pytest

from zencare_api.app.services.assessment_service import build_result, questionnaire, score_assessment
from zencare_api.app.schemas.assessment import AssessmentRead


@pytest.mark.parametrize(
    "answers, severity",
    [
        ([0] * 9, "minimal"),
        ([1, 1, 1, 1, 1, 0, 0, 0, 0], "mild"),
        ([2, 2, 2, 2, 2, 0, 0, 0, 0], "moderate"),
        ([3, 3, 3, 3, 3, 2, 0, 0, 0], "moderately_severe"),
        ([3] * 8 + [0], "severe"),
    ],
)
def test_phq9_severity_bands(answers, severity):
    score, label, crisis = score_assessment("phq9", answers)
    assert score == sum(answers)
    assert label == severity
    assert crisis is False


@pytest.mark.parametrize(
    "answers, severity",
    [
        ([0] * 7, "minimal"),
        ([1, 1, 1, 1, 1, 0, 0], "mild"),
        ([2, 2, 2, 2, 2, 0, 0], "moderate"),
        ([3, 3, 3, 3, 3, 0, 0], "severe"),
    ],
)
def test_gad7_severity_bands(answers, severity):
    assert score_assessment("gad7", answers)[1] == severity


def test_phq9_item_nine_raises_crisis_flag_even_with_low_score():
    score, severity, crisis = score_assessment("phq9", [0, 0, 0, 0, 0, 0, 0, 0, 1])
    assert (score, severity, crisis) == (1, "minimal", True)


def test_gad7_never_raises_crisis_flag():
    assert score_assessment("gad7", [3] * 7)[2] is False


@pytest.mark.parametrize(
    "assessment_type, answers, message",
    [
        ("phq9", [0] * 8, "phq9 expects 9 answers, got 8"),
        ("gad7", [0, 0, 0, 0, 0, 0, 4], "Each answer must be between 0 and 3"),
        ("bdi", [0], "Assessment type 'bdi' not found"),
    ],
)
def test_invalid_answers_are_rejected(assessment_type, answers, message):
    with pytest.raises(ValueError, match=message):
        score_assessment(assessment_type, answers)


def test_questionnaire_lists_items_with_answer_options():
    form = questionnaire("gad7")
    assert form["type"] == "gad7"
    assert len(form["questions"]) == 7
    assert [option["value"] for option in form["questions"][0]["options"]] == [0, 1, 2, 3]


def test_crisis_result_leads_with_safety_advice():
    record = AssessmentRead(
        id=1, student_id=2, type="phq9", answers=[0] * 8 + [2], score=2, severity="minimal", crisis_flag=True
    )
    result = build_result(record)
    assert result.recommendations[0].startswith("IMPORTANT")
    assert result.emergency_resources is not None


def test_mild_result_has_no_emergency_resources():
    record = AssessmentRead(
        id=1, student_id=2, type="gad7", answers=[1] * 7, score=7, severity="mild", crisis_flag=False
    )
    result = build_result(record)
    assert result.emergency_resources is None
    assert result.interpretation
    assert result.coping_strategies
