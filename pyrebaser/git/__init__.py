"""Git interfaces and implementation."""

import os
import shlex
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional
import git
from git import PushInfo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from ..typing import (
    BranchNotFoundError, CommitHash, DivergedBranchError, GitError, GitInterface,
    NotAGitRepositoryError, RefUpdate, RemoteNotFoundError,
)
from ..config.models import RebaserConfig

# Get module logger
logger = logging.getLogger(__name__)

__all__ = ["RealGit", "GitInterface", "open_repository", "local_ref", "remote_ref"]

STASH_MESSAGE = "pyrebaser autostash"

# Any of these on a ref update means the remote did not take our push
_PUSH_FAILURE_FLAGS = (
    PushInfo.ERROR | PushInfo.REJECTED | PushInfo.REMOTE_REJECTED
    | PushInfo.REMOTE_FAILURE | PushInfo.NO_MATCH
)

def local_ref(branch: str) -> str:
    """Full name of a local branch ref."""
    return f"refs/heads/{branch}"

def remote_ref(remote: str, branch: str) -> str:
    """Full name of a remote tracking ref."""
    return f"refs/remotes/{remote}/{branch}"

def open_repository(directory: Optional[str] = None) -> git.Repo:
    """Find the working copy containing directory (default: the current directory)."""
    path = directory or os.getcwd()
    try:
        return git.Repo(path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        raise NotAGitRepositoryError(f"Not in a git repository: {path}")

class RealGit:
    """Real Git implementation backed by GitPython."""
    def __init__(self, config: RebaserConfig, repo: git.Repo):
        """Initialize with config and an opened repository."""
        self.config: RebaserConfig = config
        self.repo = repo

    @property
    def working_dir(self) -> str:
        return str(self.repo.working_tree_dir)

    def _log_command(self, cmd_str: str) -> None:
        if self.config.user.log_git_commands:
            logger.info(f"> git {cmd_str}")
        else:
            logger.debug(f"> git {cmd_str}")

    def _run(self, *args: str) -> str:
        """Run a git subcommand with already-split arguments."""
        self._log_command(" ".join(shlex.quote(a) for a in args))
        # Convert command to method call, e.g. rev-parse -> rev_parse
        method = getattr(self.repo.git, args[0].replace('-', '_'))
        try:
            result = method(*args[1:])
        except GitCommandError as e:
            raise GitError(f"Git command failed: {e}") from e
        return result if isinstance(result, str) else str(result)

    def remote_names(self) -> List[str]:
        return [remote.name for remote in self.repo.remotes]

    def remote_url(self, remote: str) -> str:
        try:
            return self.repo.remote(remote).url
        except ValueError:
            raise RemoteNotFoundError(remote, self.remote_names())

    def resolve(self, ref: str) -> Optional[CommitHash]:
        """Return the commit a ref points to, or None if it does not exist."""
        try:
            return CommitHash(self._run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}").strip())
        except GitError:
            return None

    def count_commits(self, since: str, until: str) -> int:
        """Count commits reachable from until but not from since."""
        return int(self._run("rev-list", "--count", f"{since}..{until}").strip())

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        self._log_command(f"merge-base --is-ancestor {ancestor} {descendant}")
        try:
            self.repo.git.merge_base("--is-ancestor", ancestor, descendant)
        except GitCommandError as e:
            if e.status == 1:
                return False
            raise GitError(f"Git command failed: {e}") from e
        return True

    def current_checkout(self) -> str:
        """Return the checked-out branch name, or the commit hash if HEAD is detached."""
        if self.repo.head.is_detached:
            return self.repo.head.commit.hexsha
        return self.repo.active_branch.name

    def checkout(self, name: str) -> None:
        self._run("checkout", name, "--")

    def rebase(self, upstream: str) -> bool:
        """Rebase the checked-out branch onto upstream. Returns success."""
        try:
            self._run("rebase", upstream)
        except GitError as e:
            logger.debug(f"Rebase onto {upstream} failed: {e}")
            return False
        return True

    def rebase_in_progress(self) -> bool:
        git_dir = Path(self.repo.git_dir)
        return any((git_dir / name).exists() for name in ("rebase-merge", "rebase-apply"))

    def abort_rebase(self) -> bool:
        """Abort an in-progress rebase. Returns True once no rebase is in progress."""
        try:
            self._run("rebase", "--abort")
        except GitError as e:
            logger.error(f"git rebase --abort failed: {e}")
        return not self.rebase_in_progress()

    def push_with_lease(self, remote: str, branch: str, expected: CommitHash) -> List[RefUpdate]:
        """Force-push branch, but only if the remote branch still points at expected.

        Returns one RefUpdate per ref the remote reported on. A push that fails
        outright is reported as a single failed update rather than raised.
        """
        refspec = f"{local_ref(branch)}:{local_ref(branch)}"
        lease = f"{branch}:{expected}"
        self._log_command(f"push --force-with-lease={lease} {remote} {refspec}")
        try:
            infos = self.repo.remote(remote).push(refspec, force_with_lease=lease)
        except ValueError:
            raise RemoteNotFoundError(remote, self.remote_names())
        except GitCommandError as e:
            return [RefUpdate(local_ref(branch), local_ref(branch), ok=False, summary=str(e).strip())]

        updates = [
            RefUpdate(
                local_ref=info.local_ref.path if info.local_ref is not None else local_ref(branch),
                remote_ref=info.remote_ref_string,
                ok=not info.flags & _PUSH_FAILURE_FLAGS,
                summary=info.summary.strip(),
            )
            for info in infos
        ]
        if not updates:
            return [RefUpdate(local_ref(branch), local_ref(branch), ok=False, summary="no ref updates reported")]
        return updates

    def fetch(self, remote: str, branch: str) -> None:
        """Update the tracking ref of a single branch."""
        self._run("fetch", remote, f"+{local_ref(branch)}:{remote_ref(remote, branch)}")

    def fetch_all(self) -> None:
        self._run("fetch", "--all", "--prune")

    def reset_hard(self, ref: str) -> None:
        self._run("reset", "--hard", ref)

    def fast_forward(self, remote: str, branch: str) -> bool:
        """Fast-forward a local branch to its remote tracking branch.

        Returns True if the branch moved.

        Raises:
            BranchNotFoundError: If either ref is missing
            DivergedBranchError: If the local branch has commits the remote lacks
        """
        local = self.resolve(local_ref(branch))
        if local is None:
            raise BranchNotFoundError(local_ref(branch))
        upstream = self.resolve(remote_ref(remote, branch))
        if upstream is None:
            raise BranchNotFoundError(remote_ref(remote, branch))
        if local == upstream:
            return False
        if not self.is_ancestor(local, upstream):
            raise DivergedBranchError(
                f"Cannot fast-forward '{branch}': it has diverged from '{remote}/{branch}'"
            )

        if self.current_checkout() == branch:
            # Updates index and working tree too
            self._run("merge", "--ff-only", remote_ref(remote, branch))
        else:
            self._run("update-ref", "-m", f"Fast-forward {branch}", local_ref(branch), upstream, local)
        logger.info(f"Fast-forwarded {branch}")
        return True

    @contextmanager
    def autostash(self, enabled: bool = True) -> Iterator[bool]:
        """Stash uncommitted changes for the duration of the block.

        Yields whether anything was stashed. The stash is popped on exit, even
        when the block raises.
        """
        stashed = False
        if enabled and self.repo.is_dirty(untracked_files=False):
            self._run("stash", "push", "-m", STASH_MESSAGE)
            stashed = True
            logger.info("Stashed uncommitted changes")
        try:
            yield stashed
        finally:
            if stashed:
                self._run("stash", "pop")
                logger.info("Restored stashed changes")
