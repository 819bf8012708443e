"""
Meeting notes generation.

Turns a transcript into structured notes, a follow-up email, action items
or a short summary by asking the routed model for JSON and normalizing the
reply.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from savvy.exceptions.model import EmptyResponseError, NotesGenerationError
from savvy.router.llm_router import LLMRouter
from savvy.structs import ChatMessage, CompletionOptions, ContextSample, ConversationContext
from savvy.utils.json_parser import JsonParsingError, parse_json_object, split_fields, string_list

logger = logging.getLogger("NotesGenerator")

NOTES_PROMPT = """Analyze this meeting conversation and generate comprehensive notes:

{history}

Extract:
1. Summary (2-3 sentences)
2. Key discussion points
3. Decisions made with rationale
4. Action items with owners
5. Unanswered questions
6. Next steps

Format as structured JSON matching this interface:
{{
  "title": "Meeting Title",
  "summary": "...",
  "keyPoints": ["..."],
  "decisions": [{{"topic": "...", "decision": "...", "rationale": "...", "decidedBy": "..."}}],
  "actionItems": [{{"task": "...", "assignee": "...", "dueDate": "YYYY-MM-DD", "priority": "high|medium|low", "status": "pending"}}],
  "nextSteps": ["..."],
  "questions": ["..."]
}}
Ensure the output is valid JSON only (no markdown code blocks)."""

EMAIL_PROMPT = """Generate a professional follow-up email based on these meeting notes:

{notes}

Format as JSON:
{{
  "subject": "...",
  "body": "..."
}}"""

_DECISION_KEYS = ("topic", "decision", "rationale", "decidedBy")
_ACTION_KEYS = ("task", "assignee", "dueDate", "priority", "status")


@dataclass
class Decision:
    topic: str = ""
    decision: str = ""
    rationale: str = ""
    decided_by: Optional[str] = None


@dataclass
class ActionItem:
    task: str
    assignee: Optional[str] = None
    due_date: Optional[str] = None
    priority: str = "medium"
    status: str = "pending"


@dataclass
class MeetingNotes:
    title: str
    date: str
    duration_minutes: float
    participants: List[str]
    summary: str = ""
    key_points: List[str] = field(default_factory=list)
    decisions: List[Decision] = field(default_factory=list)
    action_items: List[ActionItem] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    questions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FollowUpEmail:
    subject: str
    body: str
    recipient: Optional[str] = None


class NotesGenerator:
    def __init__(self, router: LLMRouter, options: Optional[CompletionOptions] = None):
        self.router = router
        self.options = options or CompletionOptions(temperature=0.2)

    async def generate_notes(self, samples: Sequence[ContextSample]) -> MeetingNotes:
        """
        Structured notes for a transcript.

        Raises:
            NotesGenerationError: empty transcript or unparseable model reply.
            EmptyResponseError: the model answered with nothing.
            ProviderError: propagated from the router unchanged.
        """
        if not samples:
            raise NotesGenerationError("No transcript samples to summarize")

        history = "\n".join(f"{s.speaker}: {s.text}" for s in samples)
        data = await self._ask_json(NOTES_PROMPT.format(history=history))

        start, end = samples[0].timestamp, samples[-1].timestamp
        participants = list(dict.fromkeys(s.speaker for s in samples))

        return MeetingNotes(
            title=data.get("title") or "Untitled Meeting",
            date=datetime.fromtimestamp(start, tz=timezone.utc).isoformat(),
            duration_minutes=max(0.0, (end - start) / 60),
            participants=participants,
            summary=data.get("summary") or "",
            key_points=string_list(data.get("keyPoints")),
            decisions=[_decision(item) for item in _dicts(data.get("decisions"))],
            action_items=[
                item
                for item in (_action_item(raw) for raw in _dicts(data.get("actionItems")))
                if item is not None
            ],
            next_steps=string_list(data.get("nextSteps")),
            questions=string_list(data.get("questions")),
        )

    async def generate_follow_up_email(
        self, samples: Sequence[ContextSample], recipient: Optional[str] = None
    ) -> FollowUpEmail:
        notes = await self.generate_notes(samples)
        data = await self._ask_json(
            EMAIL_PROMPT.format(notes=json.dumps(notes.to_dict(), indent=2))
        )
        subject = data.get("subject")
        body = data.get("body")
        if not subject or not body:
            raise NotesGenerationError(
                "Follow-up email reply is missing subject or body",
                details={"keys": sorted(data)},
            )
        return FollowUpEmail(subject=str(subject), body=str(body), recipient=recipient)

    async def extract_action_items(self, samples: Sequence[ContextSample]) -> List[ActionItem]:
        notes = await self.generate_notes(samples)
        return notes.action_items

    async def summarize(self, samples: Sequence[ContextSample], max_length: int = 200) -> str:
        notes = await self.generate_notes(samples)
        return notes.summary[:max_length]

    async def _ask_json(self, prompt: str) -> Dict[str, Any]:
        context = ConversationContext(messages=[ChatMessage.text("user", prompt)])
        response = await self.router.complete(context, self.options)
        if not response.text.strip():
            raise EmptyResponseError(
                "Model returned an empty reply",
                details={"model": response.model, "finish_reason": response.finish_reason},
            )
        try:
            return parse_json_object(response.text)
        except JsonParsingError as exc:
            logger.error("Model reply was not valid JSON: %s", exc.message)
            raise NotesGenerationError(
                "Failed to parse notes from model reply",
                raw_response=response.text,
                original_error=exc,
            ) from exc


def _dicts(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _decision(raw: Dict[str, Any]) -> Decision:
    fields = split_fields(raw, _DECISION_KEYS)
    return Decision(
        topic=str(fields.get("topic") or ""),
        decision=str(fields.get("decision") or ""),
        rationale=str(fields.get("rationale") or ""),
        decided_by=fields.get("decidedBy"),
    )


def _action_item(raw: Dict[str, Any]) -> Optional[ActionItem]:
    fields = split_fields(raw, _ACTION_KEYS)
    task = fields.get("task")
    if not task:
        logger.debug("Dropping action item without a task: %s", raw)
        return None
    return ActionItem(
        task=str(task),
        assignee=fields.get("assignee"),
        due_date=fields.get("dueDate"),
        priority=str(fields.get("priority") or "medium").lower(),
        status=str(fields.get("status") or "pending"),
    )
