"""
End-to-end tests against real repositories (bare remote + clone).
"""

import sys
from pathlib import Path

import pytest

from git_submit.git_manager import GitManager
from git_submit.models import RefSnapshot
from git_submit.rollback import RollbackManager


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell for git hooks/editors")


def test_single_commit_is_submitted(playground, run_submit):
    tip = playground.start_branch("feature")

    result = run_submit("feature")

    assert result.exit_code == 0, result.output
    assert playground.remote_head("master") == tip
    assert playground.local_head("master") == tip
    assert not playground.local_has("feature")
    assert not playground.remote_has("feature")


def test_current_branch_is_default(playground, run_submit):
    tip = playground.start_branch("feature")

    result = run_submit()

    assert result.exit_code == 0, result.output
    assert playground.remote_head("master") == tip


def test_divergent_branch_is_rebased_onto_new_mainline(playground, run_submit):
    playground.start_branch("feature")
    new_master = playground.advance_remote_master()

    result = run_submit("feature")

    assert result.exit_code == 0, result.output
    submitted = playground.remote.commit("refs/heads/master")
    assert submitted.parents[0].hexsha == new_master
    assert submitted.message.strip() == "feature: change 0"
    assert not playground.remote_has("feature")


def test_rebase_conflict_is_abandoned(playground, run_submit):
    tip = playground.start_branch("feature", filename="README.md")
    playground.advance_remote_master(filename="README.md", content="conflicting\n")

    result = run_submit("feature")

    assert result.exit_code == 10, result.output
    gm = GitManager(playground.clone_path)
    assert not gm.is_rebase_in_progress()
    assert playground.local_head("feature") == tip


def test_nothing_to_submit(playground, run_submit):
    master = playground.local_head("master")
    playground.clone.git.checkout("-b", "feature", "master")
    playground.clone.git.push("--set-upstream", "origin", "feature")

    result = run_submit("feature")

    assert result.exit_code == 3, result.output
    assert playground.local_head("feature") == master
    assert playground.remote_has("feature")


def test_mainline_is_refused(playground, run_submit):
    playground.start_branch("feature")
    playground.clone.git.checkout("master")

    result = run_submit()

    assert result.exit_code == 1
    assert "feature" in result.output


def test_fetch_failure_is_not_branch_required(playground, run_submit):
    tip = playground.start_branch("feature")
    playground.clone.git.remote("remove", "origin")

    result = run_submit("feature")

    assert result.exit_code == 11, result.output
    assert playground.local_head("feature") == tip


def test_dirty_tree_stops_before_fetch(playground, run_submit):
    playground.start_branch("feature")
    before = playground.clone.commit("refs/remotes/origin/master").hexsha
    playground.advance_remote_master()
    (playground.clone_path / "feature.txt").write_text("uncommitted\n")

    result = run_submit("feature")

    assert result.exit_code == 2
    # No fetch happened: the remote-tracking ref did not move
    assert playground.clone.commit("refs/remotes/origin/master").hexsha == before


def test_multi_commit_declined(playground, run_submit):
    tip = playground.start_branch("feature", commits=2)
    master = playground.local_head("master")

    result = run_submit("feature", input="n\n")

    assert result.exit_code == 4, result.output
    assert "git rebase -i origin/master feature" in result.output
    assert playground.local_head("feature") == tip
    assert playground.local_head("master") == master
    assert playground.remote_head("master") == master


@posix_only
def test_multi_commit_accepted_is_squashed(playground, run_submit, monkeypatch):
    playground.start_branch("feature", commits=3)
    master = playground.local_head("master")
    monkeypatch.setenv("GIT_SEQUENCE_EDITOR", "sed -i -e '2,$s/^pick /fixup /'")
    monkeypatch.setenv("GIT_EDITOR", "true")

    result = run_submit("feature", input="y\n")

    assert result.exit_code == 0, result.output
    submitted = playground.remote.commit("refs/heads/master")
    assert submitted.parents[0].hexsha == master
    assert (submitted.tree / "feature.txt").data_stream.read() == b"change 2\n"


def test_untracked_branch_declined(playground, run_submit):
    playground.start_branch("feature", track=False)

    result = run_submit("feature", input="n\n")

    assert result.exit_code == 5, result.output
    assert not playground.remote_has("feature")
    assert playground.local_has("feature")


def test_untracked_branch_pushed_then_stops(playground, run_submit):
    tip = playground.start_branch("feature", track=False)
    master = playground.remote_head("master")

    result = run_submit("feature", input="y\n")

    assert result.exit_code == 5, result.output
    assert playground.remote_head("feature") == tip
    assert playground.remote_head("master") == master
    assert playground.clone.git.config("--get", "branch.feature.remote") == "origin"


@posix_only
def test_mainline_push_failure_rolls_back(playground, run_submit):
    tip = playground.start_branch("feature")
    master = playground.local_head("master")
    playground.reject_pushes_to("master")

    result = run_submit("feature")

    assert result.exit_code == 7, result.output
    assert playground.local_head("master") == master
    assert playground.local_head("feature") == tip
    assert playground.remote_head("master") == master
    assert playground.remote_has("feature")

    # Running the rollback again leaves the same state
    snapshot = RefSnapshot(
        branch="feature",
        mainline="master",
        mainline_remote="origin",
        remote_mainline_tip=master,
        mainline_tip=master,
        branch_tip=tip,
        branch_remote="origin",
        branch_merge="feature",
    )
    RollbackManager(GitManager(playground.clone_path)).restore(snapshot)
    assert playground.local_head("master") == master
    assert playground.local_head("feature") == tip


@posix_only
def test_rollback_removes_mainline_created_by_the_run(playground, run_submit):
    tip = playground.start_branch("feature")
    remote_master = playground.remote_head("master")
    playground.clone.git.branch("-D", "master")
    playground.reject_pushes_to("master")

    result = run_submit("feature")

    assert result.exit_code == 7, result.output
    assert not playground.local_has("master")
    assert playground.local_head("feature") == tip
    assert playground.clone.active_branch.name == "feature"
    assert playground.remote_head("master") == remote_master


def test_second_run_on_submitted_branch_is_invalid(playground, run_submit):
    playground.start_branch("feature")
    assert run_submit("feature").exit_code == 0
    master = playground.remote_head("master")

    result = run_submit("feature")

    assert result.exit_code == 8
    assert playground.remote_head("master") == master


def test_git_manager_reads(playground):
    tip = playground.start_branch("feature")
    nested = playground.clone_path / "docs"
    nested.mkdir()
    gm = GitManager(nested)
    master = playground.local_head("master")

    assert Path(gm.repo.working_dir).resolve() == playground.clone_path.resolve()
    assert gm.get_current_branch() == "feature"
    assert gm.branch_exists("feature")
    assert not gm.branch_exists("missing")
    assert gm.resolve_commit("feature") == tip
    assert gm.resolve_commit_or_none("refs/heads/missing") is None
    assert gm.get_parent(tip) == master
    assert gm.is_ancestor(master, tip)
    assert not gm.is_ancestor(tip, master)
    assert gm.get_config("branch.feature.merge") == "refs/heads/feature"
    assert gm.get_config("branch.feature.nothing") is None
    assert gm.is_index_clean()

    (playground.clone_path / "feature.txt").write_text("edited\n")
    (playground.clone_path / "scratch.txt").write_text("untracked\n")
    assert not gm.is_index_clean()
    assert gm.get_dirty_paths() == ["feature.txt"]


def test_dirty_paths_report_renamed_file_once(playground):
    playground.start_branch("feature")
    playground.clone.git.mv("feature.txt", "renamed.txt")

    assert GitManager(playground.clone_path).get_dirty_paths() == ["renamed.txt"]
