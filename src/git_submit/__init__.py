"""
git-submit - land a reviewed branch on mainline as a single rebased commit.

This package squashes and rebases a branch onto the remote mainline, pushes it,
fast-forwards mainline, and deletes the branch, rolling local refs back if a
mutating step fails.
"""

__version__ = "0.1.0"

from .submitter import BranchSubmitter
from .models import ConvergenceState, ExitCode, RefSnapshot, SubmitError, SubmitResult
from .git_manager import GitManager
from .rollback import RollbackManager

__all__ = [
    "BranchSubmitter",
    "ConvergenceState",
    "ExitCode",
    "RefSnapshot",
    "SubmitError",
    "SubmitResult",
    "GitManager",
    "RollbackManager",
]
