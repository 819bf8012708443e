"""
Playbook registry.

Built once by the composition root and passed to whoever needs it. Lookups
always resolve: unknown ids fall back to the general meeting playbook.
"""

import dataclasses
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from savvy.playbooks.defaults import DEFAULT_PLAYBOOKS, GENERAL_MEETING
from savvy.playbooks.models import ContextPriority, Example, Playbook, ResponseFormat
from savvy.structs import ClassificationResult, MeetingType

logger = logging.getLogger("PlaybookRegistry")

FALLBACK_ID = MeetingType.GENERAL_MEETING.value

# Scanned in this order; the first one wins a tie.
SPECIFIC_IDS = (
    MeetingType.TECHNICAL_INTERVIEW.value,
    MeetingType.BEHAVIORAL_INTERVIEW.value,
    MeetingType.SALES_CALL.value,
    MeetingType.VC_PITCH.value,
)

TECHNICAL_APP_MARKERS = ("code", "intellij", "terminal")

_PLAYBOOK_FIELDS = {f.name for f in dataclasses.fields(Playbook)}


class PlaybookRegistry:
    """Mutable id -> Playbook mapping holding immutable records."""

    def __init__(self, playbooks: Iterable[Playbook] = ()):
        self._lock = threading.RLock()
        self._playbooks: Dict[str, Playbook] = {}
        for playbook in playbooks:
            self.add(playbook)
        if FALLBACK_ID not in self._playbooks:
            self.add(GENERAL_MEETING)

    @classmethod
    def with_defaults(cls) -> "PlaybookRegistry":
        return cls(DEFAULT_PLAYBOOKS)

    # --- Catalog ---

    def get(self, playbook_id: str) -> Playbook:
        with self._lock:
            playbook = self._playbooks.get(playbook_id)
            if playbook is None:
                playbook = self._playbooks[FALLBACK_ID]
            return playbook

    def add(self, playbook: Playbook) -> None:
        """Insert or replace by id. Detection patterns are stored lowercased."""
        patterns = _coerce_field("detection_patterns", playbook.detection_patterns)
        if patterns != playbook.detection_patterns:
            playbook = dataclasses.replace(playbook, detection_patterns=patterns)
        with self._lock:
            if playbook.id in self._playbooks:
                logger.info("Replacing playbook '%s'", playbook.id)
            self._playbooks[playbook.id] = playbook

    def customize(self, playbook_id: str, **overrides: Any) -> Playbook:
        """
        Shallow-merge ``overrides`` onto ``get(playbook_id)`` and store the
        result under ``playbook_id``.

        Nested records (``response_format``, ``context_priority``) are
        replaced whole; dicts are accepted for them. Unknown field names are
        dropped with a warning.
        """
        unknown = sorted(set(overrides) - _PLAYBOOK_FIELDS)
        if unknown:
            logger.warning(
                "Ignoring unknown playbook fields for '%s': %s", playbook_id, unknown
            )

        changes = {
            key: _coerce_field(key, value)
            for key, value in overrides.items()
            if key in _PLAYBOOK_FIELDS
        }
        changes["id"] = playbook_id

        with self._lock:
            updated = dataclasses.replace(self.get(playbook_id), **changes)
            self._playbooks[playbook_id] = updated
        return updated

    def all_playbooks(self) -> List[Playbook]:
        with self._lock:
            return list(self._playbooks.values())

    def __contains__(self, playbook_id: object) -> bool:
        with self._lock:
            return playbook_id in self._playbooks

    def __len__(self) -> int:
        with self._lock:
            return len(self._playbooks)

    # --- Selection ---

    def detect(self, text: str, app_hint: Optional[str] = None) -> Playbook:
        """Pick the playbook whose detection patterns best match the context."""
        hint = (app_hint or "").lower()
        if hint and any(marker in hint for marker in TECHNICAL_APP_MARKERS):
            return self.get(MeetingType.TECHNICAL_INTERVIEW.value)

        haystack = f"{text or ''} {hint}".lower()
        best: Optional[Playbook] = None
        max_matches = 0

        for playbook in self._candidates():
            matches = sum(1 for pattern in playbook.detection_patterns if pattern in haystack)
            if matches > max_matches:
                max_matches = matches
                best = playbook

        if best is None:
            return self.get(FALLBACK_ID)
        return best

    def detect_for(
        self,
        result: Optional[ClassificationResult],
        text: str = "",
        app_hint: Optional[str] = None,
    ) -> Playbook:
        """Prefer the classifier's verdict; fall back to pattern detection."""
        if result is not None and result.meeting_type is not MeetingType.GENERAL_MEETING:
            return self.get(result.meeting_type.value)
        return self.detect(text, app_hint)

    @staticmethod
    def get_system_prompt(playbook: Playbook) -> str:
        return playbook.system_prompt

    def _candidates(self) -> List[Playbook]:
        with self._lock:
            ordered = [self._playbooks[pid] for pid in SPECIFIC_IDS if pid in self._playbooks]
            # Custom playbooks are scanned after the built-in ones.
            ordered.extend(
                playbook
                for pid, playbook in self._playbooks.items()
                if pid not in SPECIFIC_IDS and pid != FALLBACK_ID
            )
            return ordered


def _coerce_field(name: str, value: Any) -> Any:
    if name == "response_format" and isinstance(value, dict):
        return ResponseFormat(**value)
    if name == "context_priority" and isinstance(value, dict):
        return ContextPriority(**value)
    if name == "detection_patterns":
        return tuple(pattern.lower() for pattern in value)
    if name == "examples":
        return tuple(
            item if isinstance(item, Example) else Example(**item) for item in value
        )
    return value
