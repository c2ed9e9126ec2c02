"""
Fixtures that build throwaway repositories: a bare remote and a working clone.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from git import Repo


def configure_identity(repo: Repo) -> None:
    with repo.config_writer() as cw:
        cw.set_value("user", "name", "Test Author")
        cw.set_value("user", "email", "test@example.com")
        cw.set_value("commit", "gpgsign", "false")


def commit_file(repo: Repo, filename: str, content: str, message: str) -> str:
    """Write ``content`` to ``filename``, commit it, and return the new commit hash."""
    path = Path(repo.working_dir) / filename
    path.write_text(content)
    repo.git.add(filename)
    repo.git.commit("-m", message)
    return repo.head.commit.hexsha


class RepoPlayground:
    """A bare ``origin`` plus a clone with ``master`` checked out."""

    def __init__(self, base: Path) -> None:
        self.base = base
        self.remote_path = base / "origin.git"
        self.clone_path = base / "work"

        self.remote = Repo.init(self.remote_path, bare=True)
        self.remote.git.symbolic_ref("HEAD", "refs/heads/master")

        seed = Repo.init(base / "seed")
        seed.git.symbolic_ref("HEAD", "refs/heads/master")
        configure_identity(seed)
        commit_file(seed, "README.md", "hello\n", "Initial commit")
        seed.create_remote("origin", str(self.remote_path))
        seed.git.push("origin", "master")
        shutil.rmtree(base / "seed")

        self.clone = Repo.clone_from(str(self.remote_path), str(self.clone_path))
        configure_identity(self.clone)

    def remote_head(self, branch: str) -> str:
        return self.remote.commit(f"refs/heads/{branch}").hexsha

    def remote_has(self, branch: str) -> bool:
        return branch in [h.name for h in self.remote.heads]

    def local_head(self, branch: str) -> str:
        return self.clone.commit(f"refs/heads/{branch}").hexsha

    def local_has(self, branch: str) -> bool:
        return branch in [h.name for h in self.clone.heads]

    def start_branch(self, name: str, commits: int = 1, track: bool = True, filename: str = "feature.txt") -> str:
        """Create ``name`` off master with ``commits`` commits; optionally push with upstream."""
        self.clone.git.checkout("-b", name, "master")
        tip = ""
        for i in range(commits):
            tip = commit_file(self.clone, filename, f"change {i}\n", f"{name}: change {i}")
        if track:
            self.clone.git.push("--set-upstream", "origin", name)
        return tip

    def advance_remote_master(self, filename: str = "other.txt", content: str = "other\n") -> str:
        """Land a commit on the remote master from a second clone."""
        other = Repo.clone_from(str(self.remote_path), str(self.base / "other"))
        configure_identity(other)
        sha = commit_file(other, filename, content, f"Remote change to {filename}")
        other.git.push("origin", "master")
        shutil.rmtree(self.base / "other")
        return sha

    def reject_pushes_to(self, branch: str) -> None:
        """Install an update hook on the remote that refuses one branch."""
        hook = self.remote_path / "hooks" / "update"
        hook.parent.mkdir(exist_ok=True)
        hook.write_text(
            "#!/bin/sh\n"
            f'if [ "$1" = "refs/heads/{branch}" ]; then\n'
            f'  echo "{branch} is frozen" >&2\n'
            "  exit 1\n"
            "fi\n"
            "exit 0\n"
        )
        hook.chmod(0o755)


@pytest.fixture()
def playground(tmp_path: Path) -> RepoPlayground:
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    return RepoPlayground(tmp_path)


@pytest.fixture()
def run_submit(playground: RepoPlayground, tmp_path: Path):
    """Invoke the CLI against the playground clone."""
    from click.testing import CliRunner
    from git_submit.cli import cli

    runner = CliRunner()

    def _run(*args: str, input: str = None):
        return runner.invoke(
            cli,
            [
                "--log-file", str(tmp_path / "logs" / "git-submit.log"),
                "--repo-path", str(playground.clone_path),
                *args,
            ],
            input=input,
        )

    return _run
