"""CLI entry point."""

import sys
import click
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from click import Context
from github import GithubException

from ...config import Config, default_config
from ...config.config_parser import parse_config
from ...git import RealGit, open_repository
from ...github import DEFAULT_HOST, GitHubClient, find_github_token
from ...github.adapters import PyGithubAdapter
from ...pretty import print_header, print_json
from ...stack import PRSummary, PropagationReport, StackRebaser
from ...typing import ConfigError, ErrorKind, RebaserError
from ...util import plural

# Get module logger
logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_PRECONDITION = 2

GitHubFactory = Callable[[Config], GitHubClient]

def check(err: RebaserError) -> None:
    """Report an error and exit with the code for its kind."""
    logger.error(f"{err}")
    if err.kind is ErrorKind.FATAL:
        logger.error("The repository may be in an inconsistent state. Inspect it before running pyrebaser again.")
    sys.exit(EXIT_PRECONDITION if err.kind is ErrorKind.PRECONDITION else EXIT_FAILURE)

class AliasedGroup(click.Group):
    """Command group with support for aliases."""

    def __init__(self, name: Optional[str] = None, commands: Optional[Dict[str, click.Command]] = None, **attrs: Any) -> None:
        """Initialize with aliases map."""
        super().__init__(name, commands, **attrs)
        self.aliases: Dict[str, str] = {}

    def add_alias(self, alias: str, command: str) -> None:
        """Add an alias for a command."""
        self.aliases[alias] = command

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        """Get a command by name, supporting aliases."""
        if cmd_name in self.aliases:
            cmd_name = self.aliases[cmd_name]
        return super().get_command(ctx, cmd_name)

@click.group(cls=AliasedGroup)
@click.pass_context
def cli(ctx: Context) -> None:
    """pyrebaser - keep stacked pull requests rebased on GitHub."""
    ctx.ensure_object(dict)

def create_github_client(config: Config) -> GitHubClient:
    """Create a GitHub client for the configured host."""
    host = config.repo.github_host or DEFAULT_HOST
    token = find_github_token(host)
    if not token:
        raise ConfigError(
            f"No GitHub token found for {host}. Try one of:\n"
            "1. Set GITHUB_TOKEN env var\n"
            "2. Log in with 'gh auth login'"
        )
    return GitHubClient(config, PyGithubAdapter.from_token(token, host))

def setup_git(ctx: Context, directory: Optional[str] = None) -> Tuple[Config, RealGit, GitHubClient]:
    """Open the repository, load config and create the GitHub client."""
    repo = open_repository(directory)
    bootstrap = RealGit(default_config(), repo)
    config = Config(parse_config(bootstrap, bootstrap.working_dir))
    git_cmd = RealGit(config, repo)

    # Tests hand in a factory that builds a client around a fake GitHub
    factory: GitHubFactory = ctx.obj.get('github_factory', create_github_client)
    github = factory(config)
    return config, git_cmd, github

def log_report(report: PropagationReport) -> None:
    """Log the last outcome of every PR that was rebased at least once."""
    if not report.passes:
        return
    last: Dict[int, str] = {}
    for pass_report in report.passes:
        for result in pass_report.results:
            if result.outcome is not None:
                last[result.pr.number] = f"{result.pr}: {result.outcome.value}"
            elif result.error is not None:
                last[result.pr.number] = f"{result.pr}: failed ({result.error})"
    for line in last.values():
        logger.info(line)
    changed = sum(1 for p in report.passes for r in p.results if r.changed)
    logger.info(f"{plural(changed, 'change')} in {plural(len(report.passes), 'pass', 'passes')}")

@cli.command(name="rebase", help="Rebase my open pull requests onto their bases until the stack settles")
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if pyrebaser was started in DIRECTORY instead of the current working directory')
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
@click.option('--order', type=click.Choice(['listing', 'stack'], case_sensitive=False), default=None,
              help="Process pull requests in GitHub listing order, or bottom of each stack first")
@click.option('--max-passes', type=click.IntRange(min=0), default=None,
              help="Give up after this many passes (0 = until nothing changes)")
@click.option('--no-fetch', is_flag=True, help="Do not fetch remotes before rebasing")
@click.option('--no-stash', is_flag=True, help="Do not stash uncommitted changes")
@click.option('--no-fast-forward', is_flag=True, help="Do not fast-forward the default branch")
@click.option('--default-branch', type=str, default=None,
              help="Integration branch to fast-forward (default: the repository's default branch)")
@click.pass_context
def rebase(ctx: Context, directory: Optional[str], verbose: int, order: Optional[str], max_passes: Optional[int],
           no_fetch: bool, no_stash: bool, no_fast_forward: bool, default_branch: Optional[str]) -> None:
    """Rebase command."""
    from ... import setup_logging
    setup_logging(verbose)

    try:
        config, git_cmd, github = setup_git(ctx, directory)
        if order:
            config.tool.order = order.lower()
        if max_passes is not None:
            config.tool.max_passes = max_passes
        if no_fetch:
            config.user.fetch = False
        if no_stash:
            config.user.stash = False
        if no_fast_forward:
            config.user.fast_forward = False

        branch = default_branch or config.repo.default_branch or github.default_branch()
        prs = github.get_my_open_pull_requests()
        report = StackRebaser(config, git_cmd).run(prs, branch)
    except RebaserError as e:
        check(e)
        return
    except GithubException as e:
        logger.error(f"GitHub API error: {e}")
        sys.exit(EXIT_FAILURE)

    log_report(report)
    if not report.converged:
        sys.exit(EXIT_FAILURE)

def summary_to_dict(summary: PRSummary) -> Dict[str, Any]:
    pr = summary.pr
    return {
        'number': pr.number,
        'title': pr.title,
        'base': pr.base_ref,
        'head': pr.head_ref,
        'ahead': summary.ahead,
        'behind': summary.behind,
        'safe': summary.safe,
        'error': summary.error,
    }

def format_summary(summary: PRSummary) -> str:
    pr = summary.pr
    line = f"#{pr.number} {pr}"
    if summary.error:
        return f"{line}  ⚠ {summary.error}"
    line += f"  +{summary.ahead}/-{summary.behind}"
    if summary.safe:
        return f"{line}  safe"
    reasons: List[str] = [
        state.reason for state in (summary.base_state, summary.head_state)
        if state is not None and not state.safe
    ]
    return f"{line}  unsafe ({'; '.join(reasons)})"

@cli.command(name="status", help="Show where each of my open pull requests stands relative to its base")
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if pyrebaser was started in DIRECTORY instead of the current working directory')
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
@click.option('--json', 'as_json', is_flag=True, help="Print a JSON list instead of text")
@click.pass_context
def status(ctx: Context, directory: Optional[str], verbose: int, as_json: bool) -> None:
    """Status command."""
    from ... import setup_logging
    setup_logging(verbose)

    try:
        config, git_cmd, github = setup_git(ctx, directory)
        prs = github.get_my_open_pull_requests()
        rebaser = StackRebaser(config, git_cmd)
        summaries = [rebaser.describe(pr) for pr in prs]
    except RebaserError as e:
        check(e)
        return
    except GithubException as e:
        logger.error(f"GitHub API error: {e}")
        sys.exit(EXIT_FAILURE)

    if as_json:
        print_json([summary_to_dict(s) for s in summaries])
        return
    print_header(f"{plural(len(summaries), 'open pull request')}", use_emoji=False)
    for summary in summaries:
        click.echo(format_summary(summary))

cli.add_alias('rb', 'rebase')
cli.add_alias('st', 'status')

def main() -> None:
    """Main entry point."""
    cli(obj={})

if __name__ == "__main__":
    main()
