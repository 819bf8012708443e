"""Command line entry point: analyze a transcript or ask a question about it."""

import argparse
import asyncio
import logging
import mimetypes
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import ValidationError

from savvy.analysis.classifier import ContextClassifier
from savvy.config.settings import Settings, load_settings
from savvy.exceptions.base import SavvyBaseError
from savvy.notes import NotesGenerator
from savvy.pipeline import CopilotPipeline
from savvy.playbooks.registry import PlaybookRegistry
from savvy.structs import CompletionOptions, ContextSample, ContentPart, ImagePart
from savvy.ui.renderer import Renderer
from savvy.utils.logger import setup_logging

logger = logging.getLogger("SavvyCLI")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="savvy", description="Meeting copilot core")
    parser.add_argument("--provider", help="Override LLM_PROVIDER")
    parser.add_argument("--model", help="Override LLM_MODEL")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")

    sub = parser.add_subparsers(dest="command", required=True)

    def add_context_args(cmd: argparse.ArgumentParser):
        cmd.add_argument("--transcript", default="", help="Transcript text")
        cmd.add_argument("--transcript-file", type=Path, help="Read transcript from a file")
        cmd.add_argument("--screen", default="", help="Screen (OCR) text")
        cmd.add_argument("--app", dest="app_hint", help="Foreground application name")

    analyze = sub.add_parser("analyze", help="Classify the meeting and pick a playbook")
    add_context_args(analyze)

    ask = sub.add_parser("ask", help="Ask the model a question in meeting context")
    add_context_args(ask)
    ask.add_argument("question")
    ask.add_argument("--image", type=Path, action="append", default=[], help="Attach an image")
    ask.add_argument("--max-tokens", type=int)
    ask.add_argument("--no-stream", action="store_true", help="Wait for the full answer")

    notes = sub.add_parser("notes", help="Generate meeting notes from a 'speaker: text' file")
    notes.add_argument("transcript_file", type=Path)

    return parser


def _read_transcript(args: argparse.Namespace) -> str:
    if args.transcript_file:
        return args.transcript_file.read_text(encoding="utf-8")
    return args.transcript


def _image_parts(paths: Sequence[Path]) -> List[ContentPart]:
    parts: List[ContentPart] = []
    for path in paths:
        media_type = mimetypes.guess_type(path.name)[0] or "image/png"
        parts.append(ImagePart.from_base64(path.read_bytes(), media_type=media_type))
    return parts


def parse_transcript_lines(text: str, start: Optional[float] = None) -> List[ContextSample]:
    """One sample per non-empty line; ``speaker: text`` sets the speaker."""
    start = time.time() if start is None else start
    samples: List[ContextSample] = []
    for index, line in enumerate(line for line in text.splitlines() if line.strip()):
        speaker, sep, content = line.partition(":")
        if not sep or not content.strip():
            speaker, content = "user", line
        samples.append(
            ContextSample(text=content.strip(), timestamp=start + index, speaker=speaker.strip())
        )
    return samples


def _analyze(settings: Settings, args: argparse.Namespace, renderer: Renderer):
    # No router: analysis works without provider credentials.
    classifier = ContextClassifier(
        history_limit=settings.history_limit, language=settings.segmenter_language
    )
    playbooks = PlaybookRegistry.with_defaults()
    transcript = _read_transcript(args)
    analysis = classifier.analyze(transcript, args.screen)
    playbook = playbooks.detect_for(analysis, f"{transcript} {args.screen}", args.app_hint)
    renderer.render_analysis(analysis, playbook)


async def _ask(pipeline: CopilotPipeline, args: argparse.Namespace, renderer: Renderer):
    transcript = _read_transcript(args)
    options = CompletionOptions(max_tokens=args.max_tokens)
    parts = _image_parts(args.image)

    if args.no_stream:
        response = await pipeline.respond(
            args.question, transcript, args.screen, args.app_hint, parts, options
        )
        renderer.stream_fragment(response.text)
        renderer.end_stream()
        renderer.print_system(
            f"{response.model} | {response.usage.total} tokens | {response.finish_reason}"
        )
        return

    try:
        async for fragment in pipeline.respond_stream(
            args.question, transcript, args.screen, args.app_hint, parts, options
        ):
            renderer.stream_fragment(fragment)
    finally:
        renderer.end_stream()


async def _notes(pipeline: CopilotPipeline, args: argparse.Namespace, renderer: Renderer):
    samples = parse_transcript_lines(args.transcript_file.read_text(encoding="utf-8"))
    notes = await NotesGenerator(pipeline.router).generate_notes(samples)

    renderer.print_system(notes.title)
    renderer.console.print(notes.summary)
    for point in notes.key_points:
        renderer.console.print(f"  - {point}", markup=False)
    for item in notes.action_items:
        owner = item.assignee or "unassigned"
        renderer.console.print(f"  [ ] {item.task} ({owner}, {item.priority})", markup=False)


async def _run(pipeline: CopilotPipeline, args: argparse.Namespace, renderer: Renderer):
    try:
        if args.command == "ask":
            await _ask(pipeline, args, renderer)
        else:
            await _notes(pipeline, args, renderer)
    finally:
        await pipeline.router.providers.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    renderer = Renderer()

    overrides = {}
    if args.provider:
        overrides["llm_provider"] = args.provider
    if args.model:
        overrides["llm_model"] = args.model
    if args.log_level:
        overrides["log_level"] = args.log_level

    try:
        settings: Settings = load_settings(**overrides)
        setup_logging(settings.log_level, settings.log_file)
        if args.command == "analyze":
            _analyze(settings, args, renderer)
            return 0

        pipeline = CopilotPipeline.from_settings(settings)
        asyncio.run(_run(pipeline, args, renderer))
        return 0
    except ValidationError as exc:
        renderer.print_error(exc)
        return 2
    except SavvyBaseError as exc:
        logger.debug("Command failed", exc_info=True)
        renderer.print_error(exc)
        return 1
    except KeyboardInterrupt:
        renderer.print_warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
