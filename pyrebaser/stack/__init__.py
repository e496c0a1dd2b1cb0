"""Stacked rebase propagation.

Keeps every open pull request's head branch rebased onto its base branch.
Each pass checks which PRs are safe to touch (both branches identical to their
remote tracking branches), rebases those, and pushes the results with a lease
so that a concurrent update on the remote is never overwritten. Passes repeat
until one changes nothing: rebasing a base branch makes the PRs stacked on it
stale, and the next pass picks them up.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence

from ..config.models import RebaserConfig
from ..git import local_ref, remote_ref
from ..github import PullRequest
from ..typing import (
    BranchNotFoundError, CommitHash, FatalRebaseError, GitError, GitInterface,
    RebaseOutcome, RebaserError, RemoteNotFoundError, StackCycleError,
)
from ..util import plural
from .graph import find_cycle, order_by_stack

logger = logging.getLogger(__name__)


@dataclass
class BranchState:
    """A local branch compared with its remote tracking branch."""
    branch: str
    remote: str
    local_commit: CommitHash
    remote_commit: CommitHash
    ahead: int
    behind: int

    @property
    def tracking_name(self) -> str:
        return f"{self.remote}/{self.branch}"

    @property
    def safe(self) -> bool:
        return self.ahead == 0 and self.behind == 0

    @property
    def reason(self) -> str:
        """Why the branch is (un)safe, for the log."""
        if self.safe:
            return f"Branch \"{self.branch}\" is identical to \"{self.tracking_name}\""
        parts = []
        if self.ahead:
            parts.append(f"{plural(self.ahead, 'commit')} ahead of")
        if self.behind:
            parts.append(f"{plural(self.behind, 'commit')} behind")
        return f"Branch \"{self.branch}\" is unsafe because it is {' and '.join(parts)} \"{self.tracking_name}\""


@dataclass
class Eligibility:
    pr: PullRequest
    eligible: bool
    reason: str = ""


@dataclass
class PRResult:
    """What happened to one PR in one pass."""
    pr: PullRequest
    outcome: Optional[RebaseOutcome] = None
    skipped_reason: Optional[str] = None
    error: Optional[RebaserError] = None

    @property
    def changed(self) -> bool:
        return self.outcome is not None and self.outcome.changed


@dataclass
class PassReport:
    number: int
    results: List[PRResult] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return any(result.changed for result in self.results)

    def result_for(self, pr: PullRequest) -> Optional[PRResult]:
        for result in self.results:
            if result.pr == pr:
                return result
        return None


@dataclass
class PropagationReport:
    passes: List[PassReport] = field(default_factory=list)
    converged: bool = False

    def outcomes_for(self, pr: PullRequest) -> List[Optional[RebaseOutcome]]:
        """Outcome of pr in every pass; None where it was skipped or failed."""
        outcomes: List[Optional[RebaseOutcome]] = []
        for pass_report in self.passes:
            result = pass_report.result_for(pr)
            outcomes.append(result.outcome if result else None)
        return outcomes


@dataclass
class PRSummary:
    """Where a PR's head stands relative to its base, for status output."""
    pr: PullRequest
    ahead: Optional[int] = None
    behind: Optional[int] = None
    base_state: Optional[BranchState] = None
    head_state: Optional[BranchState] = None
    error: Optional[str] = None

    @property
    def safe(self) -> bool:
        return (self.base_state is not None and self.base_state.safe
                and self.head_state is not None and self.head_state.safe)


class StackRebaser:
    """Rebases a stack of pull requests until it settles."""

    def __init__(self, config: RebaserConfig, git_cmd: GitInterface):
        """Initialize with config and the repository to operate on."""
        self.config = config
        self.git_cmd = git_cmd

    @property
    def remote(self) -> str:
        return self.config.repo.github_remote

    def check_branch(self, branch: str) -> BranchState:
        """Compare a local branch with its remote tracking branch.

        Raises:
            BranchNotFoundError: If the local or the tracking branch is missing
        """
        local_name = local_ref(branch)
        remote_name = remote_ref(self.remote, branch)
        local_commit = self.git_cmd.resolve(local_name)
        if local_commit is None:
            raise BranchNotFoundError(local_name)
        remote_commit = self.git_cmd.resolve(remote_name)
        if remote_commit is None:
            raise BranchNotFoundError(remote_name)

        state = BranchState(
            branch=branch,
            remote=self.remote,
            local_commit=local_commit,
            remote_commit=remote_commit,
            ahead=self.git_cmd.count_commits(remote_name, local_name),
            behind=self.git_cmd.count_commits(local_name, remote_name),
        )
        if state.safe:
            logger.debug(state.reason)
        else:
            logger.info(state.reason)
        return state

    def is_safe(self, branch: str) -> bool:
        return self.check_branch(branch).safe

    def check_eligibility(self, pr: PullRequest) -> Eligibility:
        """A PR is eligible when both its base and its head are safe."""
        for role, branch in (("base", pr.base_ref), ("head", pr.head_ref)):
            try:
                safe = self.is_safe(branch)
            except BranchNotFoundError as e:
                reason = f"Pr \"{pr.title}\" is not safe because {role} ref \"{branch}\" cannot be resolved: {e}"
                logger.info(reason)
                return Eligibility(pr, False, reason)
            if not safe:
                reason = f"Pr \"{pr.title}\" is not safe because {role} ref \"{branch}\" is not safe"
                logger.info(reason)
                return Eligibility(pr, False, reason)
        return Eligibility(pr, True)

    def is_eligible(self, pr: PullRequest) -> bool:
        return self.check_eligibility(pr).eligible

    @contextmanager
    def restoring_checkout(self) -> Iterator[str]:
        """Check the current branch (or detached commit) back out when the block exits."""
        original = self.git_cmd.current_checkout()
        logger.debug(f"Current HEAD is {original}")
        try:
            yield original
        except BaseException:
            try:
                self.git_cmd.checkout(original)
            except RebaserError as e:
                # Keep the error that got us here
                logger.error(f"Failed to restore checkout of {original}: {e}")
            raise
        try:
            self.git_cmd.checkout(original)
        except RebaserError as e:
            # A finished rebase or push stands even if the checkout cannot be restored
            logger.error(f"Failed to restore checkout of {original}: {e}")
            return
        logger.debug(f"Current HEAD is {original}")

    def rebase_one(self, pr: PullRequest) -> RebaseOutcome:
        """Rebase pr's head onto its base and push the result with a lease.

        Raises:
            BranchNotFoundError: If the head has no remote tracking branch
            FatalRebaseError: If a failed rebase could not be aborted
        """
        head = pr.head_ref
        tracking = remote_ref(self.remote, head)
        # The lease: the remote must still be where we last saw it
        expected = self.git_cmd.resolve(tracking)
        if expected is None:
            raise BranchNotFoundError(tracking)

        logger.info(f"Rebasing {pr}...")
        with self.restoring_checkout():
            self.git_cmd.checkout(head)
            return self._rebase_checked_out(pr, expected)

    def _rebase_checked_out(self, pr: PullRequest, expected: CommitHash) -> RebaseOutcome:
        head, base = pr.head_ref, pr.base_ref

        if not self.git_cmd.rebase(base):
            logger.error(f"Error rebasing {head} onto {base}. Aborting...")
            if not self.git_cmd.abort_rebase():
                raise FatalRebaseError(
                    f"Aborting the rebase of \"{head}\" onto \"{base}\" left a rebase in progress; "
                    "inspect the repository manually"
                )
            logger.info(f"Successfully aborted \"{pr.title}\".")
            return RebaseOutcome.CONFLICT_ABORTED

        if self.is_safe(head):
            logger.info(f"No changes for \"{pr.title}\". Not pushing to remote.")
            return RebaseOutcome.NO_CHANGE

        logger.info(f"Successfully rebased \"{pr.title}\". Pushing changes to remote...")
        updates = self.git_cmd.push_with_lease(self.remote, head, expected)
        failed = [update for update in updates if not update.ok]
        if not failed:
            logger.info(f"Successfully pushed changes to remote for \"{pr.title}\".")
            return RebaseOutcome.PUSHED

        for update in failed:
            logger.error(f"Push to remote failed for \"{pr.title}\": {update.remote_ref} {update.summary}. Resetting...")
        self._reset_to_remote(head)
        logger.info("Successfully reset.")
        return RebaseOutcome.RACED_AND_RESET

    def _reset_to_remote(self, branch: str) -> None:
        """Throw away the local rebase in favour of whatever the remote has now."""
        try:
            self.git_cmd.fetch(self.remote, branch)
        except GitError as e:
            logger.warning(f"Could not fetch {self.remote}/{branch}, resetting to the last known remote tip: {e}")
        self.git_cmd.reset_hard(remote_ref(self.remote, branch))

    def _eligibility_for_pass(self, pr: PullRequest) -> Eligibility:
        try:
            return self.check_eligibility(pr)
        except RebaserError as e:
            if e.fatal:
                raise
            reason = f"Could not check \"{pr.title}\": {e}"
            logger.error(reason)
            return Eligibility(pr, False, reason)

    def run_pass(self, prs: Sequence[PullRequest], number: int = 1) -> PassReport:
        """Rebase every eligible PR once.

        Eligibility is decided for all PRs up front, from the state before
        this pass touches anything.
        """
        logger.info(f"Pass {number}: checking {plural(len(prs), 'pull request')}")
        eligibility = [self._eligibility_for_pass(pr) for pr in prs]

        report = PassReport(number)
        for verdict in eligibility:
            pr = verdict.pr
            if not verdict.eligible:
                logger.info(f"Not rebasing {pr} because it is unsafe")
                report.results.append(PRResult(pr, skipped_reason=verdict.reason))
                continue
            try:
                outcome = self.rebase_one(pr)
            except RebaserError as e:
                if e.fatal:
                    raise
                logger.error(f"Rebasing \"{pr.title}\" failed: {e}")
                report.results.append(PRResult(pr, error=e))
                continue
            logger.info(f"\"{pr.title}\": {outcome.value}")
            report.results.append(PRResult(pr, outcome=outcome))
        return report

    def propagate(self, prs: Sequence[PullRequest]) -> PropagationReport:
        """Run passes until one of them changes nothing.

        Raises:
            StackCycleError: If the PRs' base/head branches form a cycle
            FatalRebaseError: If a failed rebase could not be aborted
        """
        prs = list(prs)
        cycle = find_cycle(prs)
        if cycle:
            raise StackCycleError(cycle)
        if self.config.tool.order == "stack":
            prs = order_by_stack(prs)

        max_passes = self.config.tool.max_passes
        report = PropagationReport()
        while True:
            if max_passes and len(report.passes) >= max_passes:
                logger.warning(f"Stopping after {plural(len(report.passes), 'pass', 'passes')} without reaching a fixpoint")
                return report
            pass_report = self.run_pass(prs, len(report.passes) + 1)
            report.passes.append(pass_report)
            if not pass_report.changed:
                report.converged = True
                logger.info(f"Stack settled after {plural(len(report.passes), 'pass', 'passes')}")
                return report

    def describe(self, pr: PullRequest) -> PRSummary:
        """Ahead/behind counts of pr's head relative to its base, and branch safety."""
        summary = PRSummary(pr)
        try:
            summary.base_state = self.check_branch(pr.base_ref)
            summary.head_state = self.check_branch(pr.head_ref)
            summary.ahead = self.git_cmd.count_commits(local_ref(pr.base_ref), local_ref(pr.head_ref))
            summary.behind = self.git_cmd.count_commits(local_ref(pr.head_ref), local_ref(pr.base_ref))
        except RebaserError as e:
            summary.error = str(e)
        return summary

    def log_summary(self, prs: Sequence[PullRequest]) -> None:
        for pr in prs:
            summary = self.describe(pr)
            logger.info(str(pr))
            if summary.error:
                logger.info(f"  {summary.error}")
            else:
                logger.info(
                    f"\"{pr.head_ref}\" is {plural(summary.ahead or 0, 'commit')} ahead, "
                    f"{plural(summary.behind or 0, 'commit')} behind \"{pr.base_ref}\""
                )

    def run(self, prs: Sequence[PullRequest], default_branch: Optional[str] = None) -> PropagationReport:
        """Fetch, stash, fast-forward the default branch, then propagate.

        Raises:
            RemoteNotFoundError: If the configured remote does not exist
            DivergedBranchError: If the default branch cannot be fast-forwarded
        """
        remotes = self.git_cmd.remote_names()
        if self.remote not in remotes:
            raise RemoteNotFoundError(self.remote, remotes)

        if self.config.user.fetch:
            self.git_cmd.fetch_all()

        with self.git_cmd.autostash(self.config.user.stash):
            if default_branch and self.config.user.fast_forward:
                try:
                    self.git_cmd.fast_forward(self.remote, default_branch)
                except BranchNotFoundError as e:
                    logger.warning(f"Not fast-forwarding {default_branch}: {e}")
            self.log_summary(prs)
            return self.propagate(prs)
