"""Helpers for end-to-end tests against real git repositories."""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from pyrebaser.config import Config
from pyrebaser.git import RealGit
from pyrebaser.github import PullRequest
from pyrebaser.stack import StackRebaser
from pyrebaser.tests.e2e.fake_pygithub import FakeGithub
from pyrebaser.tests.utils import run_cmd

logger = logging.getLogger(__name__)

OWNER = "yang"
REPO_NAME = "teststack"


@dataclass
class StackRepoContext:
    """A working copy, a second clone of the same remote, and the bare remote itself.

    The second clone ("other") plays a collaborator who pushes to the remote
    behind our back.
    """
    root: str
    remote_dir: str
    repo_dir: str
    other_dir: str
    config: Config
    git_cmd: RealGit
    github: FakeGithub = field(default_factory=FakeGithub)

    def git(self, cmd: str, cwd: Optional[str] = None) -> str:
        return run_cmd(f"git {cmd}", cwd=cwd or self.repo_dir)

    def other(self, cmd: str) -> str:
        return self.git(cmd, cwd=self.other_dir)

    def sha(self, ref: str, cwd: Optional[str] = None) -> str:
        return self.git(f"rev-parse {ref}", cwd=cwd)

    def remote_sha(self, branch: str) -> str:
        """Where branch points on the remote itself, independent of any tracking refs."""
        return run_cmd(f"git --git-dir={self.remote_dir} rev-parse refs/heads/{branch}")

    def current_branch(self) -> str:
        return self.git("rev-parse --abbrev-ref HEAD")

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        output = run_cmd(
            f"git merge-base --is-ancestor {ancestor} {descendant} && echo yes || echo no",
            cwd=self.repo_dir,
        )
        return output == "yes"

    def commit_file(self, branch: str, filename: str, content: str, message: str,
                    cwd: Optional[str] = None) -> str:
        """Check out branch, write filename and commit it. Returns the new commit."""
        cwd = cwd or self.repo_dir
        self.git(f"checkout {branch}", cwd=cwd)
        with open(os.path.join(cwd, filename), "w") as f:
            f.write(content)
        self.git(f"add {filename}", cwd=cwd)
        self.git(f"commit -m '{message}'", cwd=cwd)
        return self.sha("HEAD", cwd=cwd)

    def create_branch(self, name: str, start: str = "main", cwd: Optional[str] = None) -> None:
        self.git(f"branch {name} {start}", cwd=cwd)

    def push(self, branch: str, cwd: Optional[str] = None) -> None:
        self.git(f"push -u origin {branch}", cwd=cwd)

    def create_pr(self, title: str, base: str, head: str, user: str = OWNER) -> PullRequest:
        """Open a PR on the fake GitHub and return it as the rebaser sees it."""
        fake = self.github.get_repo(f"{OWNER}/{REPO_NAME}").create_pull(title, base, head, user)
        return PullRequest(fake.number, title, base, head, user)

    def rebaser(self) -> StackRebaser:
        return StackRebaser(self.config, self.git_cmd)


def init_repo(path: str) -> None:
    """Identity and settings every test repository needs to commit and rebase."""
    run_cmd("git config user.name 'Test User'", cwd=path)
    run_cmd("git config user.email 'test@example.com'", cwd=path)
    run_cmd("git config commit.gpgsign false", cwd=path)
    run_cmd("git config advice.detachedHead false", cwd=path)
