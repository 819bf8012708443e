import base64
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from savvy.exceptions.context import ContextValidationError

# --- 0. Classification Vocabulary ---


class MeetingType(str, Enum):
    TECHNICAL_INTERVIEW = "TECHNICAL_INTERVIEW"
    BEHAVIORAL_INTERVIEW = "BEHAVIORAL_INTERVIEW"
    SALES_CALL = "SALES_CALL"
    VC_PITCH = "VC_PITCH"
    GENERAL_MEETING = "GENERAL_MEETING"


class MeetingPhase(str, Enum):
    INTRO = "INTRO"
    MAIN_DISCUSSION = "MAIN_DISCUSSION"
    Q_AND_A = "Q_AND_A"
    CLOSING = "CLOSING"


class MomentKind(str, Enum):
    QUESTION = "QUESTION"
    OBJECTION = "OBJECTION"
    DECISION = "DECISION"
    TRANSITION = "TRANSITION"


# --- 1. Classifier Output ---


@dataclass
class ContextSample:
    """One transcript fragment in the rolling history."""

    text: str
    timestamp: float
    speaker: str = "user"


@dataclass
class KeyMoment:
    kind: MomentKind
    text: str
    timestamp: float
    confidence: float
    subtype: Optional[str] = None  # TECHNICAL, BEHAVIORAL, RESISTANCE, ...


@dataclass
class Prediction:
    kind: str  # NEXT_QUESTION, NEXT_OBJECTION
    content: str
    probability: float
    preparedness: float


@dataclass
class Intention:
    kind: str  # SCHEDULE_MEETING, SEND_EMAIL
    text: str


@dataclass
class ClassificationResult:
    """Snapshot produced by one analysis pass. Never mutated afterwards."""

    meeting_type: MeetingType
    confidence: float
    phase: MeetingPhase
    moments: List[KeyMoment] = field(default_factory=list)
    predictions: List[Prediction] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)


# --- 2. Conversation Content ---

DATA_URL_PATTERN = re.compile(r"^data:([a-zA-Z0-9]+/[a-zA-Z0-9\-.+]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class TextPart:
    text: str
    type: str = field(default="text", init=False)


@dataclass(frozen=True)
class ImagePart:
    """
    An image handed through as-is.

    Exactly one of (media_type + data) or url is set. Encoding and size
    checks belong to the capture layer; nothing here re-encodes the payload.
    """

    media_type: Optional[str] = None
    data: Optional[str] = None
    url: Optional[str] = None
    detail: Optional[str] = None
    type: str = field(default="image", init=False)

    @classmethod
    def from_base64(cls, data: Union[str, bytes], media_type: str = "image/png") -> "ImagePart":
        if isinstance(data, bytes):
            data = base64.b64encode(data).decode("ascii")
        return cls(media_type=media_type, data=data)

    @classmethod
    def from_url(cls, url: str, detail: Optional[str] = None) -> "ImagePart":
        """Build a part from a remote URL or a base64 data URL."""
        match = DATA_URL_PATTERN.match(url)
        if match:
            return cls(media_type=match.group(1), data=match.group(2), detail=detail)
        return cls(url=url, detail=detail)

    @property
    def is_inline(self) -> bool:
        return self.data is not None

    def as_data_url(self) -> Optional[str]:
        if not self.is_inline:
            return None
        return f"data:{self.media_type};base64,{self.data}"


ContentPart = Union[TextPart, ImagePart]


@dataclass
class ChatMessage:
    role: str  # "user" or "assistant"
    parts: List[ContentPart]

    @classmethod
    def text(cls, role: str, text: str) -> "ChatMessage":
        return cls(role=role, parts=[TextPart(text)])

    def plain_text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))


@dataclass
class ConversationContext:
    """
    System instruction plus ordered messages.

    The system prompt lives only in ``system_prompt``; a message carrying
    the system role is rejected.
    """

    messages: List[ChatMessage]
    system_prompt: Optional[str] = None

    def __post_init__(self):
        for index, message in enumerate(self.messages):
            if message.role not in ("user", "assistant"):
                raise ContextValidationError(
                    f"Message {index} has unsupported role '{message.role}'",
                    details={"index": index, "role": message.role},
                )


# --- 3. Completion Contract ---


@dataclass(frozen=True)
class CompletionOptions:
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stop_sequences: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stop_sequences": list(self.stop_sequences),
        }


@dataclass
class TokenUsage:
    prompt: int = 0
    completion: int = 0
    total: int = 0


@dataclass
class CompletionResponse:
    """Provider-neutral completion result."""

    text: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: Optional[str] = None
