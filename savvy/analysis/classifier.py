"""
Context Classifier.

Rule-based, synchronous analysis of transcript and screen text: meeting
type with a heuristic confidence, conversational phase, recent key moments,
predicted next questions/objections and short coaching suggestions.

Every public method is total: any string input (including empty) yields a
result, never an exception.
"""

import logging
import re
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional, Pattern, Sequence, Tuple

import pysbd

from savvy.structs import (
    ClassificationResult,
    ContextSample,
    Intention,
    KeyMoment,
    MeetingPhase,
    MeetingType,
    MomentKind,
    Prediction,
)

logger = logging.getLogger("ContextClassifier")


@dataclass(frozen=True)
class DetectionRule:
    meeting_type: MeetingType
    keywords: Tuple[str, ...]
    patterns: Tuple[Pattern, ...] = ()


def _patterns(*expressions: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(expr, re.IGNORECASE) for expr in expressions)


# Declaration order breaks ties: the earlier rule wins.
DEFAULT_RULES: Tuple[DetectionRule, ...] = (
    DetectionRule(
        MeetingType.TECHNICAL_INTERVIEW,
        (
            "algorithm",
            "complexity",
            "optimize",
            "implement",
            "database",
            "system design",
            "big o",
            "latency",
            "throughput",
        ),
        _patterns(r"how would you", r"write a function", r"design a"),
    ),
    DetectionRule(
        MeetingType.BEHAVIORAL_INTERVIEW,
        (
            "situation",
            "task",
            "action",
            "result",
            "tell me about a time",
            "conflict",
            "challenge",
            "weakness",
            "strength",
        ),
        _patterns(r"tell me about", r"describe a"),
    ),
    DetectionRule(
        MeetingType.SALES_CALL,
        (
            "pricing",
            "roi",
            "contract",
            "timeline",
            "budget",
            "stakeholder",
            "implementation",
            "cost",
            "value property",
        ),
        _patterns(r"too expensive", r"not sure", r"send me a"),
    ),
    DetectionRule(
        MeetingType.VC_PITCH,
        (
            "market size",
            "traction",
            "burn rate",
            "valuation",
            "go-to-market",
            "cac",
            "ltv",
            "seed",
            "series a",
        ),
    ),
    DetectionRule(
        MeetingType.GENERAL_MEETING,
        ("agenda", "action items", "follow up", "next steps", "sync", "update"),
    ),
)

KEYWORD_POINTS = 1
PATTERN_POINTS = 3
BOOST_POINTS = 2
CONFIDENCE_SCALE = 5.0
# A winning score at or below this is too weak to commit to a specific type.
MIN_SPECIFIC_SCORE = 2
RECENT_SEGMENTS = 3

_PHASE_MARKERS: Tuple[Tuple[MeetingPhase, Tuple[str, ...]], ...] = (
    (MeetingPhase.INTRO, ("agenda", "welcome")),
    (MeetingPhase.Q_AND_A, ("any questions", "ask me anything")),
    (MeetingPhase.CLOSING, ("next steps", "thank you for time")),
)

_OBJECTION_MARKERS = ("too expensive", "not sure", "concerns")
_DECISION_MARKERS = ("sounds good", "let's do it", "agree")

_TECHNICAL_QUESTION = re.compile(r"how|implement|code|complexity", re.IGNORECASE)
_BEHAVIORAL_QUESTION = re.compile(r"tell me about|situation|example", re.IGNORECASE)

STAR_SUGGESTION = "Use STAR method: Situation, Task, Action, Result"
CLARIFY_SUGGESTION = "Clarify constraints before coding."
OBJECTION_SUGGESTION = "Acknowledge the concern, then pivot to value."


class ContextClassifier:
    """
    Heuristic meeting classifier with a bounded rolling transcript history.

    The only mutable state is the history used by ``process_stream``;
    ``analyze`` and the detection helpers are pure apart from timestamps.
    """

    def __init__(
        self,
        rules: Sequence[DetectionRule] = DEFAULT_RULES,
        history_limit: int = 50,
        language: str = "en",
        clock: Callable[[], float] = time.time,
    ):
        self.rules = tuple(rules)
        self.history_limit = history_limit
        self._history: Deque[ContextSample] = deque(maxlen=history_limit)
        self._segmenter = pysbd.Segmenter(language=language, clean=False)
        self._clock = clock

    # --- Public API ---

    def analyze(self, transcript: str, screen_text: str = "") -> ClassificationResult:
        transcript = transcript or ""
        screen_text = screen_text or ""

        meeting_type, confidence = self.classify_meeting_type(transcript, screen_text)
        phase = self.detect_phase(transcript)
        moments = self.detect_key_moments(transcript)
        predictions = self.predict_next(meeting_type, moments)
        suggestions = self.generate_suggestions(meeting_type, moments, predictions)

        return ClassificationResult(
            meeting_type=meeting_type,
            confidence=confidence,
            phase=phase,
            moments=moments,
            predictions=predictions,
            suggestions=suggestions,
            timestamp=self._clock(),
        )

    def process_stream(
        self, chunk: str, screen_text: str = "", speaker: str = "user"
    ) -> Optional[ClassificationResult]:
        """Append a transcript fragment and re-analyze the whole history."""
        if not chunk:
            return None

        self._history.append(
            ContextSample(text=chunk, timestamp=self._clock(), speaker=speaker)
        )
        full_context = " ".join(sample.text for sample in self._history)
        return self.analyze(full_context, screen_text)

    @property
    def history(self) -> List[ContextSample]:
        return list(self._history)

    def reset(self) -> None:
        self._history.clear()

    # --- Detection ---

    def classify_meeting_type(
        self, transcript: str, screen_text: str = ""
    ) -> Tuple[MeetingType, float]:
        text = f"{transcript} {screen_text}".lower()
        best_type = MeetingType.GENERAL_MEETING
        max_score = 0

        for rule in self.rules:
            score = self._score_rule(rule, text, screen_text)
            if score > max_score:
                max_score = score
                best_type = rule.meeting_type

        confidence = min(1.0, max_score / CONFIDENCE_SCALE)
        if max_score <= MIN_SPECIFIC_SCORE:
            best_type = MeetingType.GENERAL_MEETING

        logger.debug("Meeting type %s (score=%s)", best_type.value, max_score)
        return best_type, confidence

    @staticmethod
    def _score_rule(rule: DetectionRule, text: str, screen_text: str) -> int:
        score = sum(KEYWORD_POINTS for kw in rule.keywords if kw.lower() in text)
        score += sum(PATTERN_POINTS for pattern in rule.patterns if pattern.search(text))

        # Screen checks match the raw, case-sensitive screen text.
        if rule.meeting_type is MeetingType.TECHNICAL_INTERVIEW and (
            "code" in text or "function" in screen_text or "class" in screen_text
        ):
            score += BOOST_POINTS
        if rule.meeting_type is MeetingType.VC_PITCH and (
            "traction" in screen_text or "revenue" in screen_text
        ):
            score += BOOST_POINTS
        return score

    @staticmethod
    def detect_phase(text: str) -> MeetingPhase:
        lower = (text or "").lower()
        for phase, markers in _PHASE_MARKERS:
            if any(marker in lower for marker in markers):
                return phase
        return MeetingPhase.MAIN_DISCUSSION

    def detect_key_moments(self, text: str) -> List[KeyMoment]:
        moments: List[KeyMoment] = []
        now = self._clock()

        for segment in self._segments(text)[-RECENT_SEGMENTS:]:
            sentence = segment.strip()
            lower = sentence.lower()

            if sentence.endswith("?") or lower.startswith(("how", "what", "why")):
                moments.append(
                    KeyMoment(
                        kind=MomentKind.QUESTION,
                        text=sentence,
                        timestamp=now,
                        confidence=0.8,
                        subtype=self.classify_question(sentence),
                    )
                )

            if any(marker in lower for marker in _OBJECTION_MARKERS):
                moments.append(
                    KeyMoment(
                        kind=MomentKind.OBJECTION,
                        text=sentence,
                        timestamp=now,
                        confidence=0.85,
                        subtype="RESISTANCE",
                    )
                )

            if any(marker in lower for marker in _DECISION_MARKERS):
                moments.append(
                    KeyMoment(
                        kind=MomentKind.DECISION,
                        text=sentence,
                        timestamp=now,
                        confidence=0.9,
                        subtype="AGREEMENT",
                    )
                )

        return moments

    @staticmethod
    def classify_question(question: str) -> str:
        if _TECHNICAL_QUESTION.search(question):
            return "TECHNICAL"
        if _BEHAVIORAL_QUESTION.search(question):
            return "BEHAVIORAL"
        return "GENERAL"

    @staticmethod
    def predict_next(
        meeting_type: MeetingType, moments: Sequence[KeyMoment]
    ) -> List[Prediction]:
        if meeting_type is MeetingType.TECHNICAL_INTERVIEW:
            asked_complexity = any(
                "complexity" in m.text or "Big O" in m.text for m in moments
            )
            if asked_complexity:
                return []
            return [
                Prediction(
                    kind="NEXT_QUESTION",
                    content="What is the time and space complexity?",
                    probability=0.8,
                    preparedness=0.9,
                )
            ]
        if meeting_type is MeetingType.BEHAVIORAL_INTERVIEW:
            return [
                Prediction(
                    kind="NEXT_QUESTION",
                    content="What was the result of your actions?",
                    probability=0.7,
                    preparedness=1.0,
                )
            ]
        if meeting_type is MeetingType.SALES_CALL:
            return [
                Prediction(
                    kind="NEXT_OBJECTION",
                    content="Budget/Pricing concerns",
                    probability=0.6,
                    preparedness=0.8,
                )
            ]
        return []

    @staticmethod
    def generate_suggestions(
        meeting_type: MeetingType,
        moments: Sequence[KeyMoment],
        predictions: Sequence[Prediction],
    ) -> List[str]:
        suggestions: List[str] = []

        for moment in moments:
            if moment.kind is MomentKind.QUESTION:
                if meeting_type is MeetingType.BEHAVIORAL_INTERVIEW:
                    suggestions.append(STAR_SUGGESTION)
                elif meeting_type is MeetingType.TECHNICAL_INTERVIEW:
                    suggestions.append(CLARIFY_SUGGESTION)
            elif moment.kind is MomentKind.OBJECTION:
                suggestions.append(OBJECTION_SUGGESTION)

        for prediction in predictions:
            if prediction.probability > 0.7:
                suggestions.append(f"Prepare for: {prediction.content}")

        return suggestions

    def extract_intentions(self, transcript: str) -> List[Intention]:
        lower = (transcript or "").lower()
        intentions: List[Intention] = []
        if "schedule" in lower or "calendar" in lower:
            intentions.append(Intention(kind="SCHEDULE_MEETING", text=transcript))
        if "send" in lower and "email" in lower:
            intentions.append(Intention(kind="SEND_EMAIL", text=transcript))
        return intentions

    # --- Helpers ---

    def _segments(self, text: str) -> List[str]:
        if not text or not text.strip():
            return []
        return [segment for segment in self._segmenter.segment(text) if segment.strip()]
