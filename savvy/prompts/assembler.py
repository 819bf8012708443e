"""
Prompt Assembler.

Combines a playbook, the caller's content parts and optional instructions
into a provider-neutral ConversationContext. Images pass through untouched.
"""

import logging
from typing import List, Optional, Sequence, Union

from savvy.playbooks.models import Playbook
from savvy.playbooks.registry import PlaybookRegistry
from savvy.structs import (
    ChatMessage,
    ContentPart,
    ConversationContext,
    ImagePart,
    TextPart,
)

logger = logging.getLogger("PromptAssembler")

STAR_NOTE = "Structure the answer with the STAR method: Situation, Task, Action, Result."
CODE_NOTE = "Include working code where it answers the question."
COMPLEXITY_NOTE = "State the time and space complexity (Big-O) of any solution."

CAPTURE_SYSTEM_PROMPT = (
    "You are Savvy AI, an intelligent desktop assistant. Use the provided "
    "screenshot and clipboard context to answer user questions helpfully."
)
CAPTURE_INSTRUCTION = (
    "Please analyze the context provided (screenshot/clipboard) and answer the user's query."
)


class PromptAssembler:
    def __init__(self, registry: PlaybookRegistry):
        self.registry = registry

    def assemble(
        self,
        playbook: Playbook,
        parts: Sequence[ContentPart],
        instructions: Optional[str] = None,
        history: Sequence[ChatMessage] = (),
    ) -> ConversationContext:
        """
        Build the context for one request.

        The system prompt is the playbook template verbatim. ``history`` turns
        come first; the final user message carries ``parts`` in order, then
        the instructions, then the playbook's format notes.
        """
        content: List[ContentPart] = list(parts)

        if instructions:
            content.append(TextPart(instructions))

        notes = self.format_notes(playbook)
        if notes:
            content.append(TextPart(notes))

        messages = list(history)
        messages.append(ChatMessage(role="user", parts=content))

        logger.debug(
            "Assembled context for playbook '%s': %d message(s), %d part(s)",
            playbook.id,
            len(messages),
            len(content),
        )
        return ConversationContext(
            system_prompt=self.registry.get_system_prompt(playbook),
            messages=messages,
        )

    def assemble_for(
        self,
        playbook_id: str,
        parts: Sequence[ContentPart],
        instructions: Optional[str] = None,
    ) -> ConversationContext:
        return self.assemble(self.registry.get(playbook_id), parts, instructions)

    @staticmethod
    def format_notes(playbook: Playbook) -> str:
        fmt = playbook.response_format
        notes = []
        if fmt.use_star_method:
            notes.append(STAR_NOTE)
        if fmt.include_code:
            notes.append(CODE_NOTE)
        if fmt.include_complexity:
            notes.append(COMPLEXITY_NOTE)
        return "\n".join(notes)


def capture_parts(
    clipboard_text: Optional[str] = None,
    screenshot: Optional[Union[ImagePart, str]] = None,
) -> List[ContentPart]:
    """
    Content parts for a screenshot/clipboard capture.

    ``screenshot`` may be an ImagePart or a (data) URL string.
    """
    parts: List[ContentPart] = []
    if clipboard_text:
        parts.append(TextPart(f"Clipboard Content:\n{clipboard_text}\n"))
    if screenshot:
        if isinstance(screenshot, str):
            screenshot = ImagePart.from_url(screenshot)
        parts.append(screenshot)
    parts.append(TextPart(CAPTURE_INSTRUCTION))
    return parts


def capture_context(
    clipboard_text: Optional[str] = None,
    screenshot: Optional[Union[ImagePart, str]] = None,
) -> ConversationContext:
    """Stand-alone context for the capture shortcut, outside any playbook."""
    return ConversationContext(
        system_prompt=CAPTURE_SYSTEM_PROMPT,
        messages=[ChatMessage(role="user", parts=capture_parts(clipboard_text, screenshot))],
    )
