"""
Copilot pipeline: classifier -> playbook -> assembler -> router.

The composition root for embedding applications; every collaborator is
built once here and shared.
"""

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence

from savvy.analysis.classifier import ContextClassifier
from savvy.config.settings import Settings
from savvy.playbooks.models import Playbook
from savvy.playbooks.registry import PlaybookRegistry
from savvy.prompts.assembler import PromptAssembler
from savvy.providers.registry import ProviderRegistry
from savvy.router.llm_router import LLMRouter
from savvy.structs import (
    ClassificationResult,
    CompletionOptions,
    CompletionResponse,
    ContentPart,
    ConversationContext,
    TextPart,
)

logger = logging.getLogger("CopilotPipeline")


@dataclass
class Turn:
    """What the pipeline decided for one request."""

    analysis: ClassificationResult
    playbook: Playbook
    context: Optional[ConversationContext] = None


class CopilotPipeline:
    def __init__(
        self,
        classifier: ContextClassifier,
        playbooks: PlaybookRegistry,
        assembler: PromptAssembler,
        router: LLMRouter,
    ):
        self.classifier = classifier
        self.playbooks = playbooks
        self.assembler = assembler
        self.router = router

    @classmethod
    def from_settings(
        cls, settings: Settings, providers: Optional[ProviderRegistry] = None
    ) -> "CopilotPipeline":
        playbooks = PlaybookRegistry.with_defaults()
        return cls(
            classifier=ContextClassifier(
                history_limit=settings.history_limit,
                language=settings.segmenter_language,
            ),
            playbooks=playbooks,
            assembler=PromptAssembler(playbooks),
            router=LLMRouter.from_settings(settings, providers),
        )

    def analyze(
        self,
        transcript: str,
        screen_text: str = "",
        app_hint: Optional[str] = None,
    ) -> Turn:
        """Classify the context and pick a playbook."""
        analysis = self.classifier.analyze(transcript, screen_text)
        playbook = self.playbooks.detect_for(
            analysis, f"{transcript} {screen_text}", app_hint
        )
        logger.info(
            "Meeting %s (%.2f) -> playbook %s",
            analysis.meeting_type.value,
            analysis.confidence,
            playbook.id,
        )
        return Turn(analysis=analysis, playbook=playbook)

    def prepare(
        self,
        question: str,
        transcript: str = "",
        screen_text: str = "",
        app_hint: Optional[str] = None,
        parts: Sequence[ContentPart] = (),
    ) -> Turn:
        turn = self.analyze(transcript, screen_text, app_hint)

        content = list(parts)
        if transcript:
            content.append(TextPart(f"Transcript:\n{transcript}"))
        if screen_text:
            content.append(TextPart(f"Screen:\n{screen_text}"))

        turn.context = self.assembler.assemble(turn.playbook, content, instructions=question)
        return turn

    async def respond(
        self,
        question: str,
        transcript: str = "",
        screen_text: str = "",
        app_hint: Optional[str] = None,
        parts: Sequence[ContentPart] = (),
        options: Optional[CompletionOptions] = None,
    ) -> CompletionResponse:
        turn = self.prepare(question, transcript, screen_text, app_hint, parts)
        return await self.router.complete(turn.context, options)

    async def respond_stream(
        self,
        question: str,
        transcript: str = "",
        screen_text: str = "",
        app_hint: Optional[str] = None,
        parts: Sequence[ContentPart] = (),
        options: Optional[CompletionOptions] = None,
    ) -> AsyncIterator[str]:
        turn = self.prepare(question, transcript, screen_text, app_hint, parts)
        fragments = self.router.stream(turn.context, options)
        try:
            async for fragment in fragments:
                yield fragment
        finally:
            await fragments.aclose()
