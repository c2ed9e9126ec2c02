"""
CLI-specific implementation of the prompt interface.
"""

from __future__ import annotations

from typing import List
import click
from rich.console import Console
from rich.panel import Panel

from .prompt_interface import UserPrompt


class CliPrompt(UserPrompt):
    """CLI implementation of the prompt interface using click and rich."""

    def __init__(self, console: Console = None):
        self.console = console or Console()

    def confirm_interactive_squash(self, branch_name: str, command: str) -> bool:
        """Explain why a squash is needed and ask to run it now."""
        panel = Panel(
            f"Branch [green]{branch_name}[/green] has more than one commit ahead of mainline.\n"
            "It must be squashed into a single commit before it can be submitted.\n\n"
            f"To do it yourself, run:\n  [bold]{command}[/bold]",
            title="Squash Required",
            border_style="yellow",
        )
        self.console.print(panel)
        return self._confirm("Run the interactive rebase now?")

    def confirm_push_untracked(self, branch_name: str, command: str) -> bool:
        """Explain that the branch was never pushed and ask to push it."""
        panel = Panel(
            f"Branch [green]{branch_name}[/green] has no upstream branch.\n"
            "It has not been pushed for review yet, so it will not be submitted in this run.\n\n"
            f"To push it yourself, run:\n  [bold]{command}[/bold]",
            title="Untracked Branch",
            border_style="yellow",
        )
        self.console.print(panel)
        return self._confirm("Push it with upstream tracking now?")

    def show_messages(self, messages: List[str], style: str = "") -> None:
        for message in messages:
            self.console.print(message, style=style or None)

    def _confirm(self, question: str) -> bool:
        try:
            return click.confirm(question, default=False)
        except (click.Abort, EOFError):
            return False
