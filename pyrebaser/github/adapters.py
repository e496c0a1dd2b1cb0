"""Adapter classes to wrap PyGithub objects with our protocol interfaces."""

from typing import List, Optional, Union
import logging

from github import Auth, Github
from github.Repository import Repository
from github.PullRequest import PullRequest as PyGithubPullRequest
from github.PullRequestPart import PullRequestPart
from github.NamedUser import NamedUser
from github.AuthenticatedUser import AuthenticatedUser

from . import (
    DEFAULT_HOST,
    PyGithubProtocol,
    GitHubRepoProtocol,
    GitHubPullRequestProtocol,
    GitHubUserProtocol,
    GitHubRefProtocol,
    api_base_url,
)

logger = logging.getLogger(__name__)


class PyGithubUserAdapter(GitHubUserProtocol):
    """Adapter for PyGithub NamedUser or AuthenticatedUser objects."""

    def __init__(self, user: Union[NamedUser, AuthenticatedUser]) -> None:
        self._user = user

    @property
    def login(self) -> str:
        """Get the user's login name."""
        return self._user.login


class PyGithubRefAdapter(GitHubRefProtocol):
    """Adapter for the base/head parts of a PyGithub PullRequest."""

    def __init__(self, part: PullRequestPart) -> None:
        self._part = part

    @property
    def ref(self) -> str:
        return self._part.ref

    @property
    def sha(self) -> str:
        return self._part.sha


class PyGithubPullRequestAdapter(GitHubPullRequestProtocol):
    """Adapter for PyGithub PullRequest objects."""

    def __init__(self, pr: PyGithubPullRequest) -> None:
        self._pr = pr

    @property
    def number(self) -> int:
        return self._pr.number

    @property
    def title(self) -> str:
        return self._pr.title

    @property
    def state(self) -> str:
        return self._pr.state

    @property
    def base(self) -> GitHubRefProtocol:
        return PyGithubRefAdapter(self._pr.base)

    @property
    def head(self) -> GitHubRefProtocol:
        return PyGithubRefAdapter(self._pr.head)

    @property
    def user(self) -> GitHubUserProtocol:
        return PyGithubUserAdapter(self._pr.user)


class PyGithubRepoAdapter(GitHubRepoProtocol):
    """Adapter for PyGithub Repository objects."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    @property
    def default_branch(self) -> str:
        return self._repo.default_branch

    def get_pulls(self, state: str = "open") -> List[GitHubPullRequestProtocol]:
        """Get pull requests; PaginatedList follows the next-page links."""
        return [PyGithubPullRequestAdapter(pr) for pr in self._repo.get_pulls(state=state)]


class PyGithubAdapter(PyGithubProtocol):
    """Adapter for the main PyGithub object."""

    def __init__(self, github: Github) -> None:
        self._github = github

    @classmethod
    def from_token(cls, token: str, host: str = DEFAULT_HOST) -> "PyGithubAdapter":
        """Build a client for host (github.com or a GitHub Enterprise host)."""
        base_url = api_base_url(host)
        if base_url is None:
            return cls(Github(auth=Auth.Token(token)))
        logger.debug(f"Using GitHub API at {base_url}")
        return cls(Github(auth=Auth.Token(token), base_url=base_url))

    def get_repo(self, full_name_or_id: str) -> GitHubRepoProtocol:
        """Get a repository by full name."""
        return PyGithubRepoAdapter(self._github.get_repo(full_name_or_id))

    def get_user(self, login: Optional[str] = None) -> Optional[GitHubUserProtocol]:
        """Get a user by login or the authenticated user if login is None."""
        if login is None:
            user = self._github.get_user()
        else:
            user = self._github.get_user(login)
        return PyGithubUserAdapter(user) if user else None
