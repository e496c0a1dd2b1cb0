"""Common types used across the codebase."""

from contextlib import AbstractContextManager
from dataclasses import dataclass
from enum import Enum
from typing import List, NewType, Optional, Protocol

# Create NewTypes for commit identifiers
CommitHash = NewType('CommitHash', str)


class RebaseOutcome(Enum):
    """Result of rebasing a single pull request's head onto its base."""
    NO_CHANGE = "success-no-change"
    PUSHED = "success-pushed"
    RACED_AND_RESET = "push-raced-and-reset"
    CONFLICT_ABORTED = "conflict-aborted"

    @property
    def changed(self) -> bool:
        """Whether this outcome altered a ref that dependent branches build on."""
        return self in (RebaseOutcome.PUSHED, RebaseOutcome.RACED_AND_RESET)


class ErrorKind(Enum):
    """How far an error should travel before it stops the run."""
    PRECONDITION = "precondition"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class RebaserError(Exception):
    """Base class for all pyrebaser errors."""
    kind: ErrorKind = ErrorKind.RECOVERABLE

    @property
    def fatal(self) -> bool:
        return self.kind is ErrorKind.FATAL


class GitError(RebaserError):
    """A git command failed."""
    kind = ErrorKind.RECOVERABLE


class NotAGitRepositoryError(RebaserError):
    """The working directory is not inside a git working copy."""
    kind = ErrorKind.PRECONDITION


class RemoteNotFoundError(RebaserError):
    """The configured remote does not exist."""
    kind = ErrorKind.PRECONDITION

    def __init__(self, remote: str, available: List[str]):
        self.remote = remote
        self.available = available
        names = ", ".join(available) if available else "none"
        super().__init__(f"Remote '{remote}' not found. Available remotes: {names}")


class BranchNotFoundError(RebaserError):
    """A local branch or its remote tracking branch does not exist."""
    kind = ErrorKind.PRECONDITION

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"Reference '{ref}' not found")


class DivergedBranchError(RebaserError):
    """A branch that should only ever fast-forward has diverged from its upstream."""
    kind = ErrorKind.PRECONDITION


class StackCycleError(RebaserError):
    """Pull requests form a base/head cycle, so propagation would never settle."""
    kind = ErrorKind.PRECONDITION

    def __init__(self, branches: List[str]):
        self.branches = branches
        super().__init__(
            "Pull requests form a cycle: " + " <- ".join(branches)
        )


class ConfigError(RebaserError):
    """Configuration or credentials are missing or invalid."""
    kind = ErrorKind.PRECONDITION


class FatalRebaseError(RebaserError):
    """A rebase could not be aborted; the repository needs manual inspection."""
    kind = ErrorKind.FATAL


@dataclass
class RefUpdate:
    """One remote ref update reported back by a push."""
    local_ref: str
    remote_ref: str
    ok: bool
    summary: str = ""


class GitInterface(Protocol):
    """Protocol for the repository operations the rebaser relies on."""

    def remote_names(self) -> List[str]:
        ...

    def remote_url(self, remote: str) -> str:
        ...

    def resolve(self, ref: str) -> Optional[CommitHash]:
        """Return the commit a ref points to, or None if it does not exist."""
        ...

    def count_commits(self, since: str, until: str) -> int:
        """Count commits reachable from `until` but not from `since`."""
        ...

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        ...

    def current_checkout(self) -> str:
        """Return the checked-out branch name, or the commit hash if detached."""
        ...

    def checkout(self, name: str) -> None:
        ...

    def rebase(self, upstream: str) -> bool:
        """Rebase the checked-out branch onto upstream. Returns success."""
        ...

    def abort_rebase(self) -> bool:
        """Abort an in-progress rebase. Returns True once no rebase is in progress."""
        ...

    def rebase_in_progress(self) -> bool:
        ...

    def push_with_lease(self, remote: str, branch: str, expected: CommitHash) -> List[RefUpdate]:
        """Force-push branch, but only if the remote still points at expected."""
        ...

    def fetch(self, remote: str, branch: str) -> None:
        """Update the tracking ref of a single branch."""
        ...

    def fetch_all(self) -> None:
        ...

    def reset_hard(self, ref: str) -> None:
        ...

    def fast_forward(self, remote: str, branch: str) -> bool:
        """Fast-forward a local branch to its remote tracking branch."""
        ...

    def autostash(self, enabled: bool = True) -> AbstractContextManager[bool]:
        """Stash uncommitted changes for the duration of the block."""
        ...
