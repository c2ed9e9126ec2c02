"""
Data models and exceptions for the branch submit tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional, Sequence


MAINLINE_BRANCH = "master"
DEFAULT_REMOTE = "origin"


class ExitCode(IntEnum):
    """Process exit codes. Scripts depend on these values."""

    SUCCESS = 0
    BRANCH_REQUIRED = 1
    DIRTY_TREE = 2
    NOTHING_TO_SUBMIT = 3
    SQUASH_DECLINED = 4
    UNTRACKED_BRANCH = 5
    NOT_CONVERGED = 6
    ABORTED = 7
    INVALID_BRANCH = 8
    INTERACTIVE_REBASE_FAILED = 9
    REBASE_FAILED = 10
    # A git command failed outside the policy outcomes above
    GIT_ERROR = 11


class ConvergenceState(Enum):
    """Relationship between a branch tip and the remote mainline pointer."""

    # Exactly one commit whose parent is the pointer
    SINGLE_ANCESTOR_AHEAD = "single_ancestor_ahead"
    # Branch tip is the pointer itself
    AT_MAINLINE = "at_mainline"
    # One commit on top of an older mainline commit
    DIVERGENT = "divergent"
    MULTI_COMMIT_AHEAD = "multi_commit_ahead"


@dataclass(frozen=True)
class RefSnapshot:
    """Reference state captured before the first mutation.

    This is the only input to rollback and must not change once taken.
    """

    branch: str
    mainline: str
    mainline_remote: str
    remote_mainline_tip: str
    mainline_tip: Optional[str]
    branch_tip: str
    branch_remote: Optional[str] = None
    branch_merge: Optional[str] = None

    @property
    def remote_mainline_ref(self) -> str:
        return f"{self.mainline_remote}/{self.mainline}"

    @property
    def is_tracked(self) -> bool:
        """True when the branch has both a remote and a merge ref configured."""
        return bool(self.branch_remote) and bool(self.branch_merge)

    @property
    def remote_branch_ref(self) -> Optional[str]:
        if not self.is_tracked:
            return None
        return f"{self.branch_remote}/{self.branch_merge}"


@dataclass
class SubmitResult:
    """Outcome of a successful submission."""

    branch: str
    commit: str
    mainline: str
    mainline_remote: str
    cleanup_errors: List[str] = field(default_factory=list)

    @property
    def fully_cleaned(self) -> bool:
        return not self.cleanup_errors


class SubmitError(Exception):
    """Base exception for submit operations."""

    exit_code: int = ExitCode.GIT_ERROR


class GitRepositoryError(SubmitError):
    """Exception raised for Git repository related errors."""

    pass


class ConfigError(SubmitError):
    """No usable branch to submit (mainline given or checked out)."""

    exit_code = ExitCode.BRANCH_REQUIRED

    def __init__(self, message: str, branches: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.branches = list(branches)


class DirtyWorkingTree(SubmitError):
    exit_code = ExitCode.DIRTY_TREE

    def __init__(self, message: str, paths: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.paths = list(paths)


class InvalidBranch(SubmitError):
    exit_code = ExitCode.INVALID_BRANCH


class NothingToSubmit(SubmitError):
    exit_code = ExitCode.NOTHING_TO_SUBMIT


class SquashDeclined(SubmitError):
    exit_code = ExitCode.SQUASH_DECLINED


class UntrackedBranch(SubmitError):
    """Branch has no upstream; submission stops after the optional push."""

    exit_code = ExitCode.UNTRACKED_BRANCH

    def __init__(self, message: str, pushed: bool = False) -> None:
        super().__init__(message)
        self.pushed = pushed


class ConvergenceError(SubmitError):
    exit_code = ExitCode.NOT_CONVERGED


class RebaseFailed(SubmitError):
    """Non-interactive rebase onto mainline failed and was abandoned."""

    exit_code = ExitCode.REBASE_FAILED


class InteractiveRebaseFailed(RebaseFailed):
    exit_code = ExitCode.INTERACTIVE_REBASE_FAILED


class SubmitAborted(SubmitError):
    """A mutating step failed and local refs were restored from the snapshot."""

    exit_code = ExitCode.ABORTED

    def __init__(self, message: str, actions: Sequence[str] = (), failures: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.actions = list(actions)
        self.failures = list(failures)
