"""Tests for meeting notes generation."""

import json
from typing import List

import pytest

from conftest import FakeProvider
from savvy.exceptions import EmptyResponseError, NotesGenerationError, ProviderConnectionError
from savvy.notes import NotesGenerator
from savvy.providers.registry import ProviderRegistry
from savvy.router.llm_router import LLMRouter
from savvy.structs import ContextSample

NOTES_REPLY = {
    "title": "Pricing Review",
    "summary": "The team agreed on the new pricing tiers and assigned follow-ups.",
    "keyPoints": ["Three tiers", "Annual discount"],
    "decisions": [
        {
            "topic": "Pricing",
            "decision": "Launch three tiers",
            "rationale": "Simpler sales motion",
            "decidedBy": "Dana",
        }
    ],
    "actionItems": [
        {"task": "Update the pricing page", "assignee": "Lee", "dueDate": "2024-07-01", "priority": "HIGH"},
        {"assignee": "Nobody"},
    ],
    "nextSteps": ["Announce to customers"],
    "questions": ["Do we grandfather existing plans?"],
}


class ScriptedProvider(FakeProvider):
    """Answers successive requests from a list of replies."""

    def __init__(self, replies: List[str], **kwargs):
        super().__init__(**kwargs)
        self.replies = list(replies)

    async def _send(self, request):
        raw = await super()._send(request)
        if self.replies:
            raw = {"text": self.replies.pop(0)}
        return raw


def make_generator(provider):
    registry = ProviderRegistry()
    registry.register_instance(provider)
    return NotesGenerator(LLMRouter(registry, provider_name=provider.name))


@pytest.fixture
def samples():
    return [
        ContextSample("Let's review pricing.", timestamp=0.0, speaker="Dana"),
        ContextSample("Three tiers sounds right.", timestamp=300.0, speaker="Lee"),
        ContextSample("Agreed, ship it.", timestamp=900.0, speaker="Dana"),
    ]


@pytest.mark.asyncio
async def test_generate_notes_normalizes_the_reply(samples):
    provider = FakeProvider(reply=f"```json\n{json.dumps(NOTES_REPLY)}\n```")
    generator = make_generator(provider)

    notes = await generator.generate_notes(samples)

    assert notes.title == "Pricing Review"
    assert notes.date == "1970-01-01T00:00:00+00:00"
    assert notes.duration_minutes == 15.0
    assert notes.participants == ["Dana", "Lee"]
    assert notes.key_points == ["Three tiers", "Annual discount"]
    assert notes.decisions[0].decided_by == "Dana"

    # The item without a task is dropped.
    assert len(notes.action_items) == 1
    item = notes.action_items[0]
    assert (item.task, item.assignee, item.due_date) == ("Update the pricing page", "Lee", "2024-07-01")
    assert item.priority == "high"
    assert item.status == "pending"

    prompt = provider.requests[0]["messages"][0]
    assert "Dana: Let's review pricing." in prompt
    assert provider.requests[0]["temperature"] == 0.2


@pytest.mark.asyncio
async def test_missing_title_gets_a_default(samples):
    generator = make_generator(FakeProvider(reply='{"summary": "Short."}'))

    notes = await generator.generate_notes(samples)

    assert notes.title == "Untitled Meeting"
    assert notes.action_items == []


@pytest.mark.asyncio
async def test_invalid_json_raises_notes_error(samples):
    generator = make_generator(FakeProvider(reply="I could not summarize this."))

    with pytest.raises(NotesGenerationError) as exc_info:
        await generator.generate_notes(samples)

    assert exc_info.value.raw_response == "I could not summarize this."


@pytest.mark.asyncio
async def test_blank_reply_raises_empty_response(samples):
    generator = make_generator(FakeProvider(reply="  \n "))

    with pytest.raises(EmptyResponseError) as exc_info:
        await generator.generate_notes(samples)

    assert exc_info.value.details["model"] == "fake-large"
    assert "empty answer" in exc_info.value.user_hint


@pytest.mark.asyncio
async def test_empty_transcript_is_rejected():
    provider = FakeProvider()
    generator = make_generator(provider)

    with pytest.raises(NotesGenerationError):
        await generator.generate_notes([])
    assert provider.calls == 0


@pytest.mark.asyncio
async def test_provider_errors_propagate_unchanged(samples):
    error = ProviderConnectionError("down", provider_name="fake")
    generator = make_generator(FakeProvider(error=error))

    with pytest.raises(ProviderConnectionError) as exc_info:
        await generator.generate_notes(samples)

    assert exc_info.value is error


@pytest.mark.asyncio
async def test_follow_up_email(samples):
    provider = ScriptedProvider(
        [json.dumps(NOTES_REPLY), '{"subject": "Pricing recap", "body": "Hi all, ..."}']
    )
    generator = make_generator(provider)

    email = await generator.generate_follow_up_email(samples, recipient="team@example.com")

    assert email.subject == "Pricing recap"
    assert email.body == "Hi all, ..."
    assert email.recipient == "team@example.com"
    assert '"title": "Pricing Review"' in provider.requests[1]["messages"][0]


@pytest.mark.asyncio
async def test_follow_up_email_without_body_fails(samples):
    provider = ScriptedProvider([json.dumps(NOTES_REPLY), '{"subject": "Only a subject"}'])

    with pytest.raises(NotesGenerationError):
        await make_generator(provider).generate_follow_up_email(samples)


@pytest.mark.asyncio
async def test_summarize_truncates(samples):
    generator = make_generator(FakeProvider(reply=json.dumps(NOTES_REPLY)))

    summary = await generator.summarize(samples, max_length=12)

    assert summary == "The team agr"


@pytest.mark.asyncio
async def test_extract_action_items(samples):
    generator = make_generator(FakeProvider(reply=json.dumps(NOTES_REPLY)))

    items = await generator.extract_action_items(samples)

    assert [i.task for i in items] == ["Update the pricing page"]
