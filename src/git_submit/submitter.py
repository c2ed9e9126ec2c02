"""
Submit a reviewed branch to mainline as a single rebased commit.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

from .git_manager import GitManager
from .models import (
    ConfigError,
    ConvergenceError,
    ConvergenceState,
    DEFAULT_REMOTE,
    DirtyWorkingTree,
    GitRepositoryError,
    InteractiveRebaseFailed,
    InvalidBranch,
    MAINLINE_BRANCH,
    NothingToSubmit,
    RebaseFailed,
    RefSnapshot,
    SquashDeclined,
    SubmitAborted,
    SubmitResult,
    UntrackedBranch,
)
from .prompt_interface import NoOpPrompt, UserPrompt
from .rollback import RollbackManager


logger = logging.getLogger(__name__)

MAX_CONVERGENCE_ROUNDS = 5
HEADS_PREFIX = "refs/heads/"
LOCAL_REMOTE = "."


class BranchSubmitter:
    """Runs the submit pipeline against one repository.

    Stages run in order: resolve the branch, check preconditions, snapshot
    refs, converge to a single commit, verify tracking, integrate mainline,
    clean up. Failures in tracking or integration roll both local refs back
    to the snapshot.
    """

    def __init__(
        self,
        repo_path: Optional[Path] = None,
        prompt: Optional[UserPrompt] = None,
        mainline: str = MAINLINE_BRANCH,
        git_manager: Optional[GitManager] = None,
    ) -> None:
        self.repo_path = repo_path or Path.cwd()
        self.git_manager = git_manager or GitManager(self.repo_path)
        self.prompt = prompt or NoOpPrompt()
        self.mainline = mainline
        self.rollback_manager = RollbackManager(self.git_manager)

    def submit(self, branch: Optional[str] = None) -> SubmitResult:
        """Submit ``branch`` (default: the checked out branch) to mainline."""
        name = self.resolve_branch(branch)
        logger.info(f"Submitting {name} to {self.mainline}")

        self.check_preconditions(name)
        snapshot = self.take_snapshot(name)
        commit = self.converge(snapshot)
        self.verify_tracking(snapshot, commit)
        self.integrate_mainline(snapshot, commit)
        cleanup_errors = self.cleanup(snapshot)

        logger.info(f"Submitted {name} as {commit}")
        return SubmitResult(
            branch=name,
            commit=commit,
            mainline=self.mainline,
            mainline_remote=snapshot.mainline_remote,
            cleanup_errors=cleanup_errors,
        )

    # --- Input and preconditions ---
    def resolve_branch(self, branch: Optional[str] = None) -> str:
        """Return the branch to submit; mainline itself is refused."""
        gm = self.git_manager
        if branch is None:
            try:
                branch = gm.get_current_branch()
            except GitRepositoryError as e:
                raise ConfigError(f"Not on a branch; name the branch to submit ({e})",
                                  branches=gm.list_local_branches()) from e

        if branch == self.mainline:
            others = [b for b in gm.list_local_branches() if b != self.mainline]
            raise ConfigError(f"Cannot submit {self.mainline} itself; name a branch to submit",
                              branches=others)
        return branch

    def check_preconditions(self, branch: str) -> None:
        """Clean tree, existing branch, then fetch. Raises on the first failure."""
        gm = self.git_manager
        if not gm.is_index_clean():
            paths = gm.get_dirty_paths()
            raise DirtyWorkingTree("Working tree has uncommitted changes", paths=paths)

        if not gm.branch_exists(branch):
            raise InvalidBranch(f"{branch} is not a local branch")

        remotes = [self.mainline_remote()]
        branch_remote = gm.get_config(f"branch.{branch}.remote")
        if branch_remote and branch_remote != LOCAL_REMOTE and branch_remote not in remotes:
            remotes.append(branch_remote)
        for remote in remotes:
            gm.fetch_remote(remote)

    def mainline_remote(self) -> str:
        return self.git_manager.get_config(f"branch.{self.mainline}.remote") or DEFAULT_REMOTE

    def take_snapshot(self, branch: str) -> RefSnapshot:
        """Capture every ref the rest of the run and any rollback depend on."""
        gm = self.git_manager
        mainline_remote = self.mainline_remote()
        remote_ref = f"refs/remotes/{mainline_remote}/{self.mainline}"
        try:
            remote_mainline_tip = gm.resolve_commit(remote_ref)
        except GitRepositoryError as e:
            raise GitRepositoryError(
                f"{mainline_remote}/{self.mainline} does not exist; cannot submit without a remote mainline"
            ) from e

        branch_remote = gm.get_config(f"branch.{branch}.remote")
        merge = gm.get_config(f"branch.{branch}.merge")
        if merge and merge.startswith(HEADS_PREFIX):
            merge = merge[len(HEADS_PREFIX):]
        if branch_remote == LOCAL_REMOTE:
            # Upstream is another local branch, never pushed for review
            branch_remote, merge = None, None

        snapshot = RefSnapshot(
            branch=branch,
            mainline=self.mainline,
            mainline_remote=mainline_remote,
            remote_mainline_tip=remote_mainline_tip,
            mainline_tip=gm.resolve_commit_or_none(HEADS_PREFIX + self.mainline),
            branch_tip=gm.resolve_commit(HEADS_PREFIX + branch),
            branch_remote=branch_remote,
            branch_merge=merge,
        )
        logger.debug(f"Snapshot: {snapshot}")
        return snapshot

    # --- Convergence ---
    def classify(self, branch: str, target: str) -> ConvergenceState:
        """Classify how the branch tip relates to the mainline pointer."""
        gm = self.git_manager
        tip = gm.resolve_commit(HEADS_PREFIX + branch)
        parent = gm.get_parent(tip)

        if parent == target:
            return ConvergenceState.SINGLE_ANCESTOR_AHEAD
        if tip == target:
            return ConvergenceState.AT_MAINLINE
        if parent is not None and gm.is_ancestor(parent, target):
            return ConvergenceState.DIVERGENT
        return ConvergenceState.MULTI_COMMIT_AHEAD

    def converge(self, snapshot: RefSnapshot) -> str:
        """Make the branch one commit on top of the remote mainline pointer.

        Returns:
            The branch tip once it sits directly on the pointer
        """
        branch = snapshot.branch
        target = snapshot.remote_mainline_tip

        for round_no in range(1, MAX_CONVERGENCE_ROUNDS + 1):
            state = self.classify(branch, target)
            logger.info(f"Convergence round {round_no}: {branch} is {state.value}")

            if state is ConvergenceState.SINGLE_ANCESTOR_AHEAD:
                return self.git_manager.resolve_commit(HEADS_PREFIX + branch)
            if state is ConvergenceState.AT_MAINLINE:
                raise NothingToSubmit(
                    f"{branch} has no changes on top of {snapshot.remote_mainline_ref}; nothing to submit"
                )
            if state is ConvergenceState.DIVERGENT:
                self._rebase_onto_mainline(snapshot)
            else:
                self._squash_interactively(snapshot)

        raise ConvergenceError(
            f"{branch} did not settle on {snapshot.remote_mainline_ref} after {MAX_CONVERGENCE_ROUNDS} rounds"
        )

    def _rebase_onto_mainline(self, snapshot: RefSnapshot) -> None:
        gm = self.git_manager
        self.prompt.show_messages([f"Rebasing {snapshot.branch} onto {snapshot.remote_mainline_ref}"])
        try:
            success, conflicts = gm.start_rebase(snapshot.remote_mainline_tip, snapshot.branch)
        except GitRepositoryError as e:
            self._abandon_rebase()
            raise RebaseFailed(f"Rebase of {snapshot.branch} failed: {e}") from e

        if not success:
            self._abandon_rebase()
            files = ", ".join(str(p) for p in conflicts)
            raise RebaseFailed(
                f"Rebase of {snapshot.branch} onto {snapshot.remote_mainline_ref} hit conflicts in: {files}"
            )

    def _squash_interactively(self, snapshot: RefSnapshot) -> None:
        gm = self.git_manager
        command = f"git rebase -i {snapshot.remote_mainline_ref} {snapshot.branch}"
        if not self.prompt.confirm_interactive_squash(snapshot.branch, command):
            raise SquashDeclined(
                f"{snapshot.branch} has more than one commit; squash it with: {command}"
            )

        try:
            completed = gm.interactive_rebase(snapshot.remote_mainline_tip, snapshot.branch)
        except GitRepositoryError as e:
            self._abandon_rebase()
            raise InteractiveRebaseFailed(f"Interactive rebase of {snapshot.branch} failed: {e}") from e

        if not completed:
            self._abandon_rebase()
            raise InteractiveRebaseFailed(f"Interactive rebase of {snapshot.branch} did not complete")

    def _abandon_rebase(self) -> None:
        gm = self.git_manager
        if gm.is_rebase_in_progress():
            gm.abort_rebase()

    # --- Tracking ---
    def verify_tracking(self, snapshot: RefSnapshot, commit: str) -> None:
        """Make sure the branch's remote copy matches ``commit``.

        An untracked branch can be pushed on request but always stops the run.
        """
        gm = self.git_manager
        branch = snapshot.branch

        if not snapshot.is_tracked:
            remote = snapshot.mainline_remote
            command = f"git push --set-upstream {remote} {branch}"
            pushed = False
            if self.prompt.confirm_push_untracked(branch, command):
                self._mutate(
                    snapshot,
                    f"push {branch} to {remote}",
                    lambda: gm.push(remote, branch, set_upstream=True),
                )
                pushed = True
            raise UntrackedBranch(
                f"{branch} has no upstream branch; get it reviewed, then run submit again",
                pushed=pushed,
            )

        remote_tip = gm.resolve_commit_or_none(f"refs/remotes/{snapshot.remote_branch_ref}")
        if remote_tip == commit:
            logger.info(f"{snapshot.remote_branch_ref} is up to date")
            return

        logger.info(f"{snapshot.remote_branch_ref} is at {remote_tip}, local is {commit}; force pushing")
        self.prompt.show_messages([f"Updating {snapshot.remote_branch_ref}"])
        self._mutate(
            snapshot,
            f"force push {branch} to {snapshot.remote_branch_ref}",
            lambda: gm.push(
                snapshot.branch_remote, f"{branch}:{snapshot.branch_merge}", force=True
            ),
        )

    # --- Integration ---
    def integrate_mainline(self, snapshot: RefSnapshot, commit: str) -> None:
        """Fast-forward local mainline onto the branch and push it."""
        gm = self.git_manager
        mainline = snapshot.mainline

        self._mutate(snapshot, f"checkout {mainline}", lambda: gm.checkout_branch(mainline))

        def fast_forward() -> None:
            success, conflicts = gm.start_rebase(snapshot.branch)
            if not success:
                raise GitRepositoryError(f"Rebase of {mainline} onto {snapshot.branch} hit conflicts")

        self._mutate(snapshot, f"fast-forward {mainline} to {commit[:12]}", fast_forward)
        self.prompt.show_messages([f"Pushing {mainline} to {snapshot.mainline_remote}"])
        self._mutate(
            snapshot,
            f"push {mainline} to {snapshot.mainline_remote}",
            lambda: gm.push(snapshot.mainline_remote, mainline),
        )

    # --- Cleanup ---
    def cleanup(self, snapshot: RefSnapshot) -> List[str]:
        """Delete the branch locally and on its remote. Failures are returned, not raised."""
        gm = self.git_manager
        errors: List[str] = []

        try:
            gm.delete_branch(snapshot.branch)
        except GitRepositoryError as e:
            logger.warning(f"Could not delete local branch {snapshot.branch}: {e}")
            errors.append(str(e))

        if snapshot.is_tracked:
            try:
                gm.delete_remote_branch(snapshot.branch_remote, snapshot.branch_merge)
            except GitRepositoryError as e:
                logger.warning(f"Could not delete {snapshot.remote_branch_ref}: {e}")
                errors.append(str(e))
        return errors

    # --- Rollback ---
    def _mutate(self, snapshot: RefSnapshot, description: str, operation: Callable[[], None]) -> None:
        """Run a mutating step; on failure restore the snapshot and abort."""
        try:
            operation()
        except GitRepositoryError as e:
            logger.error(f"Failed to {description}: {e}")
            self._rollback(snapshot, f"Failed to {description}: {e}", e)

    def _rollback(self, snapshot: RefSnapshot, reason: str, cause: Exception) -> None:
        actions, failures = self.rollback_manager.restore(snapshot)
        logger.info(f"Rollback performed: {actions}; failures: {failures}")
        raise SubmitAborted(reason, actions=actions, failures=failures) from cause
