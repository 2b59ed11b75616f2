"""
Keyword-based crisis detection.

The detector lowercases a message and checks it for each phrase on the
crisis keyword list of the message's language (English when the
language is not supported).  Any match flags the message; the
confidence grows with the number of matches and saturates at three.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from zencare_api.app.core.config import settings

CRISIS_KEYWORDS: Dict[str, List[str]] = {
    "en": [
        "suicide", "kill myself", "end my life", "want to die", "better off dead",
        "hurt myself", "self harm", "cut myself", "overdose", "jump off",
        "hang myself", "shoot myself", "no point living", "life is meaningless",
        "everyone would be better without me", "planning to die", "goodbye forever",
        "final goodbye", "can't go on", "nothing left", "hopeless", "worthless",
    ],
    "te": ["ఆత్మహత్య", "చచ్చిపోవాలని", "జీవితం అంతం", "మరణించాలని", "బతకలేను"],
    "hi": ["आत्महत्या", "मरना चाहता हूं", "जीवन समाप्त", "मौत", "जीना नहीं चाहता"],
    "ta": ["தற்கொலை", "சாக வேண்டும்", "வாழ்க்கை முடிவு", "மரணம்", "வாழ முடியாது"],
}

CRISIS_RESPONSES: Dict[str, str] = {
    "en": (
        "I'm very concerned about what you've shared. Your life has value and there are people who want "
        "to help. Please reach out to a crisis counselor or emergency services immediately. You don't have "
        "to go through this alone."
    ),
    "te": (
        "మీరు పంచుకున్న విషయం గురించి నేను చాలా ఆందోళన చెందుతున్నాను. మీ జీవితానికి విలువ ఉంది మరియు "
        "మీకు సహాయం చేయాలని అనుకునే వ్యక్తులు ఉన్నారు. దయచేసి వెంటనే సంక్షోభ సలహాదారుని లేదా అత్యవసర "
        "సేవలను సంప్రదించండి."
    ),
    "hi": (
        "आपने जो साझा किया है उसके बारे में मैं बहुत चिंतित हूं। आपके जीवन का मूल्य है और ऐसे लोग हैं जो "
        "आपकी मदद करना चाहते हैं। कृपया तुरंत किसी संकट परामर्शदाता या आपातकालीन सेवाओं से संपर्क करें।"
    ),
    "ta": (
        "நீங்கள் பகிர்ந்துகொண்டது குறித்து நான் மிகவும் கவலைப்படுகிறேன். உங்கள் வாழ்க்கைக்கு மதிப்பு உண்டு "
        "மற்றும் உங்களுக்கு உதவ விரும்பும் நபர்கள் உள்ளனர். தயவுசெய்து உடனடியாக நெருக்கடி ஆலோசகர் அல்லது "
        "அவசர சேவைகளை தொடர்பு கொள்ளுங்கள்."
    ),
}

CRISIS_RECOMMENDATIONS: Dict[str, List[str]] = {
    "en": [
        "Call 988 (Suicide & Crisis Lifeline) - Available 24/7",
        "Text HOME to 741741 (Crisis Text Line)",
        "Go to your nearest emergency room",
        "Call 911 if in immediate danger",
        "Reach out to a trusted friend or family member",
        "Contact your therapist or counselor if you have one",
    ],
    "te": [
        "సంక్షోభ హెల్ప్‌లైన్‌కు కాల్ చేయండి",
        "సమీప ఆసుపత్రికి వెళ్లండి",
        "విశ్వసనీయ స్నేహితుడు లేదా కుటుంబ సభ్యుడిని సంప్రదించండి",
        "మీకు థెరపిస్ట్ ఉంటే వారిని సంప్రదించండి",
    ],
    "hi": [
        "संकट हेल्पलाइन पर कॉल करें",
        "निकटतम अस्पताल जाएं",
        "किसी विश्वसनीय मित्र या परिवारजन से संपर्क करें",
        "यदि आपका कोई थेरेपिस्ट है तो उनसे संपर्क करें",
    ],
    "ta": [
        "நெருக்கடி உதவி எண்ணை அழைக்கவும்",
        "அருகிலுள்ள மருத்துவமனைக்கு செல்லுங்கள்",
        "நம்பகமான நண்பர் அல்லது குடும்ப உறுப்பினரை தொடர்பு கொள்ளுங்கள்",
        "உங்களுக்கு சிகிச்சையாளர் இருந்தால் அவர்களை தொடர்பு கொள்ளுங்கள்",
    ],
}


@dataclass
class CrisisResult:
    is_crisis: bool
    confidence: float
    matched_keywords: List[str] = field(default_factory=list)
    response: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)


class CrisisDetector:
    """Substring matcher over per-language crisis keyword lists."""

    def __init__(self, extra_keywords: Iterable[str] = ()) -> None:
        self.keywords = {language: list(words) for language, words in CRISIS_KEYWORDS.items()}
        for phrase in extra_keywords:
            phrase = phrase.strip().lower()
            if phrase and phrase not in self.keywords["en"]:
                self.keywords["en"].append(phrase)

    def _language(self, language: Optional[str]) -> str:
        language = (language or "en").lower()
        return language if language in self.keywords else "en"

    def detect(self, message: str, language: str = "en") -> CrisisResult:
        language = self._language(language)
        normalized = message.lower()
        matched = [keyword for keyword in self.keywords[language] if keyword.lower() in normalized]
        confidence = min(len(matched) / 3, 1.0)
        if not matched:
            return CrisisResult(is_crisis=False, confidence=confidence)
        return CrisisResult(
            is_crisis=True,
            confidence=confidence,
            matched_keywords=matched,
            response=CRISIS_RESPONSES[language],
            recommendations=list(CRISIS_RECOMMENDATIONS[language]),
        )

    def stats(self) -> Dict[str, object]:
        return {
            "supported_languages": sorted(self.keywords),
            "keyword_counts": {language: len(words) for language, words in self.keywords.items()},
            "method": "keyword",
        }


crisis_detector = CrisisDetector(settings.crisis_extra_keywords.split(","))
