"""
UI-agnostic prompt interface for user interactions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List


class UserPrompt(ABC):
    """Abstract interface for the yes/no decisions the submit flow needs."""

    @abstractmethod
    def confirm_interactive_squash(self, branch_name: str, command: str) -> bool:
        """
        Ask user whether to squash a multi-commit branch with an interactive rebase now.

        Args:
            branch_name: Name of the branch being submitted
            command: The equivalent manual git command

        Returns:
            True to run the interactive rebase, False to stop
        """
        pass

    @abstractmethod
    def confirm_push_untracked(self, branch_name: str, command: str) -> bool:
        """
        Ask user whether to push a branch that has no upstream configured.

        Args:
            branch_name: Name of the branch being submitted
            command: The equivalent manual git command

        Returns:
            True to push with upstream tracking, False to skip
        """
        pass

    @abstractmethod
    def show_messages(self, messages: List[str], style: str = "") -> None:
        """Display progress messages from core logic.

        Args:
            messages: List of strings to display
            style: Optional style hint for UI implementations
        """
        pass


class NoOpPrompt(UserPrompt):
    """No-operation prompt that always declines."""

    def confirm_interactive_squash(self, branch_name: str, command: str) -> bool:
        return False

    def confirm_push_untracked(self, branch_name: str, command: str) -> bool:
        return False

    def show_messages(self, messages: List[str], style: str = "") -> None:
        pass
