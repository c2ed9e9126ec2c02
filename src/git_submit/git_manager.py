"""
Git repository handle: every query and mutation the submit flow needs.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple
from git import Repo, InvalidGitRepositoryError, NoSuchPathError
from git.exc import BadName, GitCommandError

from .models import GitRepositoryError


logger = logging.getLogger(__name__)


class GitManager:
    """Manages Git operations for a single repository."""

    def __init__(self, repo_path: Optional[Path] = None) -> None:
        """Initialize Git manager with optional repository path."""
        self.repo_path = (repo_path or Path.cwd()).resolve()
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Get the Git repository instance."""
        if self._repo is None:
            self._repo = self._discover_repository()
        return self._repo

    def _discover_repository(self) -> Repo:
        """Discover the Git repository from the configured path or any parent."""
        logger.debug(f"Discovering repository in: {self.repo_path}")
        try:
            repo = Repo(self.repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise GitRepositoryError(
                f"No Git repository found at {self.repo_path} or any parent directory"
            ) from e
        logger.info(f"Found Git repository at: {repo.working_dir}")
        return repo

    # --- Branches and refs ---
    def get_current_branch(self) -> str:
        """Get the current branch name."""
        try:
            return self.repo.active_branch.name
        except TypeError as e:
            # GitPython raises TypeError for a detached HEAD
            logger.error(f"Error getting current branch: {e}")
            raise GitRepositoryError(f"Could not determine current branch: {e}")

    def list_local_branches(self) -> List[str]:
        """List local branch names (full names, including slashes)."""
        return [h.name for h in self.repo.heads]

    def branch_exists(self, branch_name: str) -> bool:
        """Check if a local branch exists."""
        return branch_name in self.list_local_branches()

    def resolve_commit(self, ref: str) -> str:
        """Resolve a ref to a full commit hash."""
        try:
            return self.repo.git.rev_parse("--verify", "--quiet", f"{ref}^{{commit}}").strip()
        except GitCommandError as e:
            raise GitRepositoryError(f"Cannot resolve {ref} to a commit") from e

    def resolve_commit_or_none(self, ref: str) -> Optional[str]:
        """Resolve a ref to a commit hash, or None when it does not exist."""
        try:
            return self.resolve_commit(ref)
        except GitRepositoryError:
            return None

    def get_parent(self, commitish: str) -> Optional[str]:
        """Return the first parent of a commit, or None for a root commit."""
        try:
            parents = self.repo.commit(commitish).parents
        except (BadName, ValueError) as e:
            raise GitRepositoryError(f"Unknown commit {commitish}: {e}") from e
        return parents[0].hexsha if parents else None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """Return True if ``ancestor`` is reachable from ``descendant``."""
        try:
            return self.repo.is_ancestor(ancestor, descendant)
        except GitCommandError as e:
            raise GitRepositoryError(f"Failed to compare {ancestor} and {descendant}: {e}") from e

    def get_config(self, key: str) -> Optional[str]:
        """Read a git configuration value; None if unset."""
        try:
            value = self.repo.git.config("--get", key).strip()
        except GitCommandError:
            return None
        return value or None

    # --- Working tree ---
    def is_index_clean(self) -> bool:
        """Return True if there are no staged or unstaged changes (untracked ignored)."""
        if self.repo.is_dirty(index=True, working_tree=True, untracked_files=False):
            return False
        # No unresolved merges
        if self.repo.git.ls_files("-u").strip():
            return False
        return True

    def get_dirty_paths(self) -> List[str]:
        """Return list of paths that are staged or unstaged (untracked ignored)."""
        try:
            output = self.repo.git.status("--porcelain", "-z")
        except GitCommandError:
            return []
        dirty: List[str] = []
        entries = iter(output.split("\0"))
        for entry in entries:
            if len(entry) < 4 or entry.startswith("??"):
                continue
            if set(entry[:2]) & {"R", "C"}:
                # Renames and copies are followed by their source path
                next(entries, None)
            dirty.append(entry[3:])
        return dirty

    def checkout_branch(self, branch_name: str) -> None:
        """Checkout a specific branch."""
        try:
            self.repo.git.checkout(branch_name)
            logger.info(f"Checked out branch: {branch_name}")
        except GitCommandError as e:
            logger.error(f"Error checking out branch {branch_name}: {e}")
            raise GitRepositoryError(f"Failed to checkout branch {branch_name}: {e}")

    def force_branch(self, branch_name: str, target: str) -> None:
        """Force a local branch to point at target (commitish).

        A checked out branch is hard reset so the working tree follows it.
        """
        try:
            try:
                current = self.repo.active_branch.name
            except TypeError:
                current = None

            if current == branch_name:
                self.repo.git.reset("--hard", target)
            else:
                self.repo.git.branch("-f", branch_name, target)
            logger.info(f"Reset branch {branch_name} -> {target}")
        except GitCommandError as e:
            logger.error(f"Error resetting branch {branch_name}: {e}")
            raise GitRepositoryError(f"Failed to reset branch {branch_name}: {e}")

    def delete_branch(self, branch_name: str, force: bool = False) -> None:
        """Delete a local branch. Without ``force`` git refuses unmerged branches."""
        try:
            self.repo.git.branch("-D" if force else "-d", branch_name)
            logger.info(f"Deleted branch {branch_name}")
        except GitCommandError as e:
            logger.error(f"Error deleting branch {branch_name}: {e}")
            raise GitRepositoryError(f"Failed to delete branch {branch_name}: {e}")

    # --- Rebase ---
    def start_rebase(self, upstream: str, branch: Optional[str] = None) -> Tuple[bool, List[Path]]:
        """
        Rebase ``branch`` (or the checked out branch) onto ``upstream``.

        Returns:
            Tuple of (success, conflict_files)
        """
        args = [upstream] if branch is None else [upstream, branch]
        try:
            logger.debug(f"Called 'git rebase {' '.join(args)}' in {self.repo.working_dir}")
            self.repo.git.rebase(*args)
        except GitCommandError as e:
            conflict_files = self._get_conflict_files()
            if conflict_files:
                logger.warning(f"Rebase has conflicts in files: {conflict_files}")
                return False, conflict_files
            logger.error(f"Rebase failed: {e}")
            raise GitRepositoryError(f"Rebase failed: {e}")

        if not self.is_index_clean():
            dirty = self.get_dirty_paths()
            logger.error(f"Rebase completed but index is dirty: {dirty}")
            raise GitRepositoryError("Rebase left repository with a dirty index")
        logger.info("Rebase completed successfully")
        return True, []

    def interactive_rebase(self, upstream: str, branch: str) -> bool:
        """Run ``git rebase -i`` attached to the user's terminal.

        Returns True only if git exited cleanly and no rebase is left stopped
        (an ``edit`` or ``break`` step exits 0 with the rebase still pending).
        """
        command = ["git", "rebase", "-i", upstream, branch]
        logger.debug(f"Running {' '.join(command)} in {self.repo.working_dir}")
        try:
            returncode = subprocess.call(command, cwd=self.repo.working_dir)
        except OSError as e:
            raise GitRepositoryError(f"Could not run interactive rebase: {e}") from e

        if returncode != 0:
            logger.warning(f"Interactive rebase exited with status {returncode}")
            return False
        if self.is_rebase_in_progress():
            logger.warning("Interactive rebase stopped before completing")
            return False
        logger.info("Interactive rebase completed successfully")
        return True

    def _get_conflict_files(self) -> List[Path]:
        """Get list of files with merge conflicts."""
        try:
            output = self.repo.git.diff("--name-only", "--diff-filter=U")
        except GitCommandError as e:
            logger.error(f"Error getting conflict files: {e}")
            return []
        return [Path(self.repo.working_dir) / f.strip() for f in output.split("\n") if f.strip()]

    def abort_rebase(self) -> None:
        """Abort a rebase operation."""
        try:
            self.repo.git.rebase("--abort")
            logger.info("Rebase aborted successfully")
        except GitCommandError as e:
            logger.error(f"Failed to abort rebase: {e}")
            raise GitRepositoryError(f"Failed to abort rebase: {e}")

    def is_rebase_in_progress(self) -> bool:
        """Check if a rebase is currently in progress."""
        git_dir = Path(self.repo.git_dir)
        rebase_dirs = [git_dir / "rebase-merge", git_dir / "rebase-apply"]
        return any(d.exists() for d in rebase_dirs)

    # --- Remote synchronization ---
    def fetch_remote(self, remote_name: str) -> None:
        """Fetch updates from a remote."""
        try:
            self.repo.remotes[remote_name].fetch(prune=True)
            logger.info(f"Fetched updates from {remote_name} in {self.repo.working_dir}")
        except (IndexError, GitCommandError) as e:
            logger.error(f"Failed to fetch from {remote_name}: {e}")
            raise GitRepositoryError(f"Failed to fetch from {remote_name}: {e}")

    def push(
        self,
        remote_name: str,
        refspec: str,
        force: bool = False,
        set_upstream: bool = False,
    ) -> None:
        """Push a refspec to a remote, optionally forced or setting upstream."""
        args: List[str] = []
        if force:
            args.append("--force")
        if set_upstream:
            args.append("--set-upstream")
        args.extend([remote_name, refspec])
        try:
            self.repo.git.push(*args)
            logger.info(f"Pushed {refspec} to {remote_name} (force={force}, set_upstream={set_upstream})")
        except GitCommandError as e:
            logger.error(f"Failed to push {refspec} to {remote_name}: {e}")
            raise GitRepositoryError(f"Failed to push {refspec} to {remote_name}: {e}")

    def delete_remote_branch(self, remote_name: str, branch_name: str) -> None:
        """Delete a branch on a remote."""
        try:
            self.repo.git.push(remote_name, "--delete", branch_name)
            logger.info(f"Deleted {branch_name} on {remote_name}")
        except GitCommandError as e:
            logger.error(f"Failed to delete {branch_name} on {remote_name}: {e}")
            raise GitRepositoryError(f"Failed to delete {branch_name} on {remote_name}: {e}")
