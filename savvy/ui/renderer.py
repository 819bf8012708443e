"""
savvy/ui/renderer.py - The View Layer

Rich console output for the command line. Never reads input.
"""

from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from savvy.exceptions.base import SavvyBaseError
from savvy.playbooks.models import Playbook
from savvy.structs import ClassificationResult


class Renderer:
    """Formats analyses, streamed answers and errors."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(highlight=False)
        self._streaming = False

    def print_system(self, message: str):
        self.console.print(f"[bold blue][SYS] {escape(message)}[/bold blue]")

    def print_warning(self, message: str):
        self.console.print(f"[bold yellow][WARN] {escape(message)}[/bold yellow]")

    def render_analysis(self, analysis: ClassificationResult, playbook: Playbook):
        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column("field", style="bold cyan")
        table.add_column("value")
        table.add_row("Meeting type", analysis.meeting_type.value)
        table.add_row("Confidence", f"{analysis.confidence:.2f}")
        table.add_row("Phase", analysis.phase.value)
        table.add_row("Playbook", f"{playbook.name} ({playbook.id})")
        self.console.print(table)

        for moment in analysis.moments:
            self.console.print(
                f"  [magenta]{moment.kind.value}[/magenta]"
                f" [dim]({moment.subtype}, {moment.confidence:.2f})[/dim] {escape(moment.text)}"
            )
        for prediction in analysis.predictions:
            self.console.print(
                f"  [yellow]{prediction.kind}[/yellow] {escape(prediction.content)}"
                f" [dim]p={prediction.probability:.2f}[/dim]"
            )
        for suggestion in analysis.suggestions:
            self.console.print(f"  [green]>[/green] {escape(suggestion)}")

    def stream_fragment(self, text: str):
        if not self._streaming:
            self.console.print("[bold green][SAVVY][/bold green] ", end="")
            self._streaming = True
        self.console.print(text, end="", highlight=False, markup=False)

    def end_stream(self):
        if self._streaming:
            self.console.print()
            self._streaming = False

    def print_error(self, error: Exception):
        message = escape(str(error))
        if isinstance(error, SavvyBaseError):
            message = f"{escape(error.message)}\n[dim]{escape(error.user_hint)}[/dim]"
        content = Text.from_markup(message, style="red3 bold")
        self.console.print(
            Panel(
                content,
                title="[bold red]Error[/]",
                border_style="red3",
                box=box.ROUNDED,
                padding=(1, 2),
            )
        )
