"""
Restore local references from a pre-run snapshot.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .git_manager import GitManager
from .models import GitRepositoryError, RefSnapshot

logger = logging.getLogger(__name__)


class RollbackManager:
    """Put mainline and the submitted branch back where the snapshot found them.

    Only local refs are restored. A push that already reached the remote
    stays there.
    """

    def __init__(self, git_manager: GitManager) -> None:
        self.gm = git_manager

    def restore(self, snapshot: RefSnapshot) -> Tuple[List[str], List[str]]:
        """Restore both refs from the snapshot.

        Every step is attempted even if an earlier one fails. Safe to call
        more than once.

        Returns:
            Tuple of (actions performed, failures)
        """
        actions: List[str] = []
        failures: List[str] = []

        try:
            # Forcing refs while a rebase is stopped would leave it dangling
            if self.gm.is_rebase_in_progress():
                logger.warning("Rebase in progress. Aborting rebase before restoring refs.")
                self.gm.abort_rebase()
                actions.append("aborted in-progress rebase")
        except GitRepositoryError as e:
            failures.append(str(e))

        if snapshot.mainline_tip is None:
            self._remove_created_mainline(snapshot, actions, failures)
        else:
            self._reset(snapshot.mainline, snapshot.mainline_tip, actions, failures)

        self._reset(snapshot.branch, snapshot.branch_tip, actions, failures)
        return actions, failures

    def _remove_created_mainline(self, snapshot: RefSnapshot, actions: List[str], failures: List[str]) -> None:
        """Delete a local mainline that only exists because this run checked it out."""
        mainline = snapshot.mainline
        try:
            if not self.gm.branch_exists(mainline):
                return
            if self._current_branch() == mainline:
                # A checked out branch cannot be deleted
                self.gm.checkout_branch(snapshot.branch)
            self.gm.delete_branch(mainline, force=True)
        except GitRepositoryError as e:
            logger.error(f"Failed to remove {mainline} created during the run: {e}")
            failures.append(f"{mainline}: {e}")
            return
        logger.info(f"Deleted {mainline}, which did not exist before the run")
        actions.append(f"deleted {mainline} (created during the run)")

    def _current_branch(self) -> Optional[str]:
        try:
            return self.gm.get_current_branch()
        except GitRepositoryError:
            return None

    def _reset(self, branch: str, commit: str, actions: List[str], failures: List[str]) -> None:
        try:
            self.gm.force_branch(branch, commit)
        except GitRepositoryError as e:
            logger.error(f"Failed to restore {branch} to {commit}: {e}")
            failures.append(f"{branch}: {e}")
            return
        logger.info(f"Restored {branch} to {commit}")
        actions.append(f"reset {branch} to {commit[:12]}")
