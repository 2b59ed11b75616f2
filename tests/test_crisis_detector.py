from zencare_api.app.services.crisis_detector import CRISIS_RESPONSES, CrisisDetector


def test_ordinary_message_is_not_a_crisis():
    result = CrisisDetector().detect("I have an exam tomorrow and feel a bit nervous")
    assert result.is_crisis is False
    assert result.confidence == 0.0
    assert result.matched_keywords == []
    assert result.response is None


def test_single_keyword_flags_message():
    result = CrisisDetector().detect("Sometimes I think about SUICIDE")
    assert result.is_crisis is True
    assert result.matched_keywords == ["suicide"]
    assert abs(result.confidence - 1 / 3) < 1e-9
    assert result.response == CRISIS_RESPONSES["en"]
    assert result.recommendations


def test_confidence_saturates_at_three_matches():
    message = "I feel hopeless and worthless, I want to die and end my life"
    result = CrisisDetector().detect(message)
    assert len(result.matched_keywords) >= 3
    assert result.confidence == 1.0


def test_language_specific_keywords():
    detector = CrisisDetector()
    hindi = detector.detect("मैं आत्महत्या के बारे में सोच रहा हूं", language="hi")
    assert hindi.is_crisis is True
    assert hindi.response == CRISIS_RESPONSES["hi"]
    # English phrases are not checked for other supported languages
    assert detector.detect("I want to die", language="hi").is_crisis is False


def test_unsupported_language_falls_back_to_english():
    result = CrisisDetector().detect("I want to die", language="fr")
    assert result.is_crisis is True
    assert result.response == CRISIS_RESPONSES["en"]


def test_extra_keywords_extend_english_list():
    detector = CrisisDetector(extra_keywords=["  Disappear Forever ", ""])
    assert detector.detect("I just want to disappear forever").is_crisis is True
    stats = detector.stats()
    assert stats["method"] == "keyword"
    assert stats["supported_languages"] == ["en", "hi", "ta", "te"]
    assert stats["keyword_counts"]["en"] == CrisisDetector().stats()["keyword_counts"]["en"] + 1
