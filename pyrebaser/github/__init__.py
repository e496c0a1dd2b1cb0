"""GitHub interfaces and implementation."""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

import yaml

from ..util import ensure
from ..config.models import RebaserConfig
from ..typing import ConfigError

# Get module logger
logger = logging.getLogger(__name__)

DEFAULT_HOST = "github.com"

@dataclass(frozen=True)
class PullRequest:
    """Pull request info.

    Read-only view of an open pull request; the rebaser only ever touches the
    branches named by base_ref and head_ref.
    """
    number: int
    title: str
    base_ref: str
    head_ref: str
    user_login: str = ""

    def __str__(self) -> str:
        """Convert to string."""
        return f"\"{self.title}\" {self.base_ref} <- {self.head_ref}"

# Define protocols for GitHub objects
@runtime_checkable
class GitHubUserProtocol(Protocol):
    """Protocol for GitHub user objects (real or fake)."""
    @property
    def login(self) -> str:
        """Get the user's login name."""
        ...

@runtime_checkable
class GitHubRefProtocol(Protocol):
    """Protocol for GitHub ref objects (base/head references)."""
    @property
    def ref(self) -> str:
        """Get the ref name (e.g., 'main', 'feature-branch')."""
        ...

    @property
    def sha(self) -> str:
        """Get the commit SHA."""
        ...

@runtime_checkable
class GitHubPullRequestProtocol(Protocol):
    """Protocol for GitHub pull request objects (real or fake)."""
    @property
    def number(self) -> int:
        """Get the PR number."""
        ...

    @property
    def title(self) -> str:
        """Get the PR title."""
        ...

    @property
    def state(self) -> str:
        """Get the PR state (open, closed)."""
        ...

    @property
    def base(self) -> GitHubRefProtocol:
        """Get the base reference."""
        ...

    @property
    def head(self) -> GitHubRefProtocol:
        """Get the head reference."""
        ...

    @property
    def user(self) -> GitHubUserProtocol:
        """Get the user who created the PR."""
        ...

@runtime_checkable
class GitHubRepoProtocol(Protocol):
    """Protocol for GitHub repository objects (real or fake)."""
    @property
    def default_branch(self) -> str:
        """Get the repository's default branch."""
        ...

    def get_pulls(self, state: str = "open") -> List[GitHubPullRequestProtocol]:
        """Get pull requests, following pagination."""
        ...

@runtime_checkable
class PyGithubProtocol(Protocol):
    """Protocol for PyGithub implementations (real or fake).

    This protocol defines the interface that both the real PyGithub library
    and the test fake must satisfy.
    """
    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        """Get a repository by full name."""
        ...

    def get_user(self, login: Optional[str] = None) -> Optional[GitHubUserProtocol]:
        """Get a user by login or the authenticated user if login is None."""
        ...

def api_base_url(host: str) -> Optional[str]:
    """REST API base URL for host; None means the public github.com default."""
    if host == DEFAULT_HOST:
        return None
    return f"https://{host}/api/v3"

def find_github_token(host: str = DEFAULT_HOST) -> Optional[str]:
    """Find GitHub token from env var or gh CLI config."""
    # First try environment variable
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    # Then try gh CLI config at ~/.config/gh/hosts.yml
    gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
    try:
        with open(gh_config_path, "r") as f:
            gh_config = yaml.safe_load(f)
    except FileNotFoundError:
        return None
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error reading gh CLI config: {e}")
        return None

    if gh_config and host in gh_config:
        host_config: Dict[str, object] = gh_config[host] or {}
        token = host_config.get("oauth_token")
        if isinstance(token, str) and token:
            return token
    return None

class GitHubClient:
    """GitHub client implementation."""
    def __init__(self, config: RebaserConfig, github_client: PyGithubProtocol):
        """Initialize with config and GitHub client implementation.

        Args:
            config: The configuration
            github_client: GitHub client implementation (real or fake)
        """
        self.config = config
        self.client = github_client
        self._repo: Optional[GitHubRepoProtocol] = None

    @property
    def repo(self) -> GitHubRepoProtocol:
        """Get GitHub repository."""
        if self._repo is None:
            owner = self.config.repo.github_repo_owner
            name = self.config.repo.github_repo_name
            if not owner or not name:
                raise ConfigError("GitHub repository owner/name unknown; set repo.github_repo_owner and repo.github_repo_name")
            self._repo = self.client.get_repo(f"{owner}/{name}")
        return self._repo

    @repo.setter
    def repo(self, value: GitHubRepoProtocol) -> None:
        """Set the GitHub repository."""
        self._repo = value

    def default_branch(self) -> str:
        """Get the repository's default branch."""
        branch = self.repo.default_branch
        logger.debug(f"Default branch: {branch}")
        return branch

    def get_my_open_pull_requests(self) -> List[PullRequest]:
        """Get open pull requests authored by the authenticated user, in listing order."""
        logger.info("> github fetch pull requests")
        current_user = ensure(self.client.get_user()).login

        result: List[PullRequest] = []
        total = 0
        for pr in self.repo.get_pulls(state="open"):
            total += 1
            if not pr.user or pr.user.login != current_user:
                continue
            result.append(PullRequest(
                number=pr.number,
                title=pr.title,
                base_ref=pr.base.ref,
                head_ref=pr.head.ref,
                user_login=pr.user.login,
            ))
        logger.info(f"Found {len(result)} open pull requests by {current_user} ({total} open in total)")
        return result
