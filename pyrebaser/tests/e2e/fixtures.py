"""Fixtures for end-to-end tests: real repositories sharing a bare file:// remote."""

import os
import logging
from pathlib import Path
from typing import Generator

import git
import pytest

from pyrebaser.config import Config
from pyrebaser.config.config_parser import REPO_CONFIG_FILE
from pyrebaser.git import RealGit
from pyrebaser.tests.e2e.helpers import OWNER, REPO_NAME, StackRepoContext, init_repo
from pyrebaser.tests.utils import run_cmd

logger = logging.getLogger(__name__)


def create_stack_repo(root: Path) -> StackRepoContext:
    """Create a bare remote with a main branch, our clone of it and a collaborator's clone."""
    remote_dir = str(root / "remote.git")
    repo_dir = str(root / REPO_NAME)
    other_dir = str(root / "other")

    run_cmd(f"git init --bare {remote_dir}")
    run_cmd("git symbolic-ref HEAD refs/heads/main", cwd=remote_dir)

    os.mkdir(repo_dir)
    run_cmd("git init", cwd=repo_dir)
    run_cmd("git symbolic-ref HEAD refs/heads/main", cwd=repo_dir)
    init_repo(repo_dir)
    with open(os.path.join(repo_dir, "README.md"), "w") as f:
        f.write("# teststack\n\nline one\nline two\n")
    run_cmd("git add README.md", cwd=repo_dir)
    run_cmd("git commit -m 'Initial commit'", cwd=repo_dir)
    run_cmd(f"git remote add origin file://{remote_dir}", cwd=repo_dir)
    run_cmd("git push -u origin main", cwd=repo_dir)

    # A file:// remote carries no owner/name, so the repo config supplies them
    with open(os.path.join(repo_dir, REPO_CONFIG_FILE), "w") as f:
        f.write(
            "repo:\n"
            "  github_host: github.com\n"
            f"  github_repo_owner: {OWNER}\n"
            f"  github_repo_name: {REPO_NAME}\n"
            "user:\n"
            "  log_git_commands: true\n"
        )
    with open(os.path.join(repo_dir, ".git", "info", "exclude"), "a") as f:
        f.write(f"{REPO_CONFIG_FILE}\n")

    run_cmd(f"git clone file://{remote_dir} {other_dir}")
    init_repo(other_dir)

    config = Config({
        'repo': {
            'github_remote': 'origin',
            'github_host': 'github.com',
            'github_repo_owner': OWNER,
            'github_repo_name': REPO_NAME,
        },
        'user': {
            'log_git_commands': True,
        },
    })
    git_cmd = RealGit(config, git.Repo(repo_dir))
    logger.info(f"Created test repositories under {root}")
    return StackRepoContext(
        root=str(root),
        remote_dir=remote_dir,
        repo_dir=repo_dir,
        other_dir=other_dir,
        config=config,
        git_cmd=git_cmd,
    )


@pytest.fixture
def stack_repo(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[StackRepoContext, None, None]:
    """Fresh repositories per test, isolated from the user's git and pyrebaser config."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    ctx = create_stack_repo(tmp_path)
    yield ctx
    ctx.git_cmd.repo.close()
