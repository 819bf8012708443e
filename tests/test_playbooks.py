"""Tests for the playbook registry: lookup, customization and detection."""

import dataclasses
import logging

import pytest

from savvy.playbooks import ContextPriority, Playbook, PlaybookRegistry, ResponseFormat
from savvy.playbooks.defaults import DEFAULT_PLAYBOOKS
from savvy.structs import ClassificationResult, MeetingPhase, MeetingType


@pytest.fixture
def registry():
    return PlaybookRegistry.with_defaults()


def test_defaults_cover_every_meeting_type(registry):
    assert len(registry) == 5
    for meeting_type in MeetingType:
        assert registry.get(meeting_type.value).id == meeting_type.value


def test_unknown_id_falls_back_to_general(registry):
    assert registry.get("DOES_NOT_EXIST").id == "GENERAL_MEETING"


def test_default_response_formats(registry):
    technical = registry.get("TECHNICAL_INTERVIEW").response_format
    assert technical.include_code and technical.include_complexity
    assert technical.tone == "technical"
    assert technical.max_length == 2000

    behavioral = registry.get("BEHAVIORAL_INTERVIEW").response_format
    assert behavioral.use_star_method and behavioral.include_metrics
    assert behavioral.max_length == 1000

    assert registry.get("SALES_CALL").response_format.tone == "persuasive"
    assert registry.get("VC_PITCH").response_format.tone == "confident"
    assert registry.get("GENERAL_MEETING").context_priority == ContextPriority(
        screen=0.5, audio=0.5, history=0.0
    )


def test_playbooks_are_immutable(registry):
    playbook = registry.get("SALES_CALL")

    with pytest.raises(dataclasses.FrozenInstanceError):
        playbook.system_prompt = "changed"


def test_system_prompt_is_returned_verbatim(registry):
    playbook = registry.get("VC_PITCH")

    assert registry.get_system_prompt(playbook) is playbook.system_prompt
    assert playbook.system_prompt.startswith("You are Savvy AI")


@pytest.mark.parametrize(
    "text, app_hint, expected",
    [
        ("leetcode binary tree problem", None, "TECHNICAL_INTERVIEW"),
        ("tell me about a time you showed leadership", None, "BEHAVIORAL_INTERVIEW"),
        ("pricing and discount", None, "SALES_CALL"),
        ("our mrr and unit economics", None, "VC_PITCH"),
        ("lunch plans", None, "GENERAL_MEETING"),
        ("", None, "GENERAL_MEETING"),
        ("lunch plans", "Visual Studio Code", "TECHNICAL_INTERVIEW"),
        ("pricing and discount", "iTerm Terminal", "TECHNICAL_INTERVIEW"),
        ("lunch plans", "IntelliJ IDEA", "TECHNICAL_INTERVIEW"),
    ],
)
def test_detect(registry, text, app_hint, expected):
    assert registry.detect(text, app_hint).id == expected


def test_detect_tie_goes_to_first_declared(registry):
    # One behavioral hit, one sales hit.
    assert registry.detect("conflict over pricing").id == "BEHAVIORAL_INTERVIEW"


def test_detect_counts_app_hint_text(registry):
    assert registry.detect("weekly chat", "Sales deal desk").id == "SALES_CALL"


def test_customize_merges_and_stores_under_id(registry, caplog):
    with caplog.at_level(logging.WARNING, logger="PlaybookRegistry"):
        updated = registry.customize(
            "SALES_CALL", system_prompt="Close the deal.", bogus_field=1
        )

    original = DEFAULT_PLAYBOOKS[2]
    assert updated.id == "SALES_CALL"
    assert updated.system_prompt == "Close the deal."
    assert updated.detection_patterns == original.detection_patterns
    assert updated.response_format == original.response_format
    assert registry.get("SALES_CALL") is updated
    assert "bogus_field" in caplog.text


def test_customize_accepts_nested_dicts(registry):
    updated = registry.customize(
        "GENERAL_MEETING",
        response_format={"tone": "casual", "max_length": 300},
        detection_patterns=["Standup", "Retro"],
    )

    assert updated.response_format == ResponseFormat(tone="casual", max_length=300)
    assert updated.detection_patterns == ("standup", "retro")


def test_customize_unknown_id_creates_record_from_fallback(registry):
    custom = registry.customize("STANDUP", name="Standup Helper")

    assert custom.id == "STANDUP"
    assert custom.name == "Standup Helper"
    assert custom.system_prompt == registry.get("GENERAL_MEETING").system_prompt
    assert "STANDUP" in registry
    # The fallback itself is untouched.
    assert registry.get("GENERAL_MEETING").name == "Meeting Assistant"


def test_add_is_an_upsert(registry):
    replacement = Playbook(
        id="VC_PITCH",
        name="Investor Day",
        description="Replacement",
        system_prompt="Be bold.",
        detection_patterns=("investor",),
    )
    registry.add(replacement)

    assert len(registry) == 5
    assert registry.get("VC_PITCH") is replacement


def test_custom_playbooks_are_detected_after_builtins(registry):
    registry.add(
        Playbook(
            id="STANDUP",
            name="Standup",
            description="Daily standup",
            system_prompt="Keep it short.",
            detection_patterns=("blocker", "yesterday"),
        )
    )

    assert registry.detect("any blocker since yesterday?").id == "STANDUP"


def test_detect_for_prefers_classifier_verdict(registry):
    result = ClassificationResult(
        meeting_type=MeetingType.VC_PITCH,
        confidence=0.8,
        phase=MeetingPhase.MAIN_DISCUSSION,
    )

    assert registry.detect_for(result, "pricing and discount").id == "VC_PITCH"


def test_detect_for_general_verdict_uses_patterns(registry):
    result = ClassificationResult(
        meeting_type=MeetingType.GENERAL_MEETING,
        confidence=0.2,
        phase=MeetingPhase.MAIN_DISCUSSION,
    )

    assert registry.detect_for(result, "pricing and discount").id == "SALES_CALL"


def test_add_lowercases_detection_patterns(registry):
    registry.add(
        Playbook(
            id="BOARD",
            name="Board Meeting",
            description="Quarterly board review",
            system_prompt="Be concise.",
            detection_patterns=("Board Deck", "KPI"),
        )
    )

    assert registry.get("BOARD").detection_patterns == ("board deck", "kpi")
    assert registry.detect("walking through the Board Deck kpi slide").id == "BOARD"


def test_empty_registry_still_resolves_to_general():
    registry = PlaybookRegistry()

    assert len(registry) == 1
    assert registry.get("ANYTHING").id == "GENERAL_MEETING"
    assert registry.detect("pricing and discount").id == "GENERAL_MEETING"
