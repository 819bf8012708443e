from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class ResponseFormat:
    tone: str = "professional"  # professional, casual, technical, persuasive, confident
    max_length: int = 2000
    include_code: bool = False
    include_complexity: bool = False
    use_star_method: bool = False
    include_metrics: bool = False


@dataclass(frozen=True)
class ContextPriority:
    """Relative weights (0-1) for screen, audio and history context."""

    screen: float = 0.5
    audio: float = 0.5
    history: float = 0.0


@dataclass(frozen=True)
class Example:
    input: str
    output: str


@dataclass(frozen=True)
class Playbook:
    """
    A per-meeting-type response strategy.

    Records are immutable; customizing one stores a new record under the
    same id in the registry.
    """

    id: str
    name: str
    description: str
    system_prompt: str
    detection_patterns: Tuple[str, ...] = ()
    response_format: ResponseFormat = field(default_factory=ResponseFormat)
    context_priority: ContextPriority = field(default_factory=ContextPriority)
    examples: Tuple[Example, ...] = ()
