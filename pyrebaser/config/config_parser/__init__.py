"""Config parser logic."""

import re
from pathlib import Path
from typing import Dict, Optional, Tuple, Union, Any
import logging
import yaml

from ...typing import ConfigError, GitInterface

# Get module logger
logger = logging.getLogger(__name__)

ConfigValue = Union[str, bool, int]
SectionConfig = Dict[str, Any]  # Use Any since yaml can return various types
Config = Dict[str, SectionConfig]

REPO_CONFIG_FILE = ".pyrebaser.yaml"

# git@github.com:owner/repo.git
_SCP_URL_REGEX = re.compile(r'^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$')
# ssh://git@github.com/owner/repo.git, https://github.com/owner/repo
_URL_REGEX = re.compile(
    r'^(?:ssh|https?|git)://(?:[^@/]+@)?(?P<host>[^/:]+)(?::\d+)?/(?P<owner>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$'
)


def parse_remote_url(remote_url: str) -> Tuple[str, str, str]:
    """Split a remote URL into (host, owner, repo name).

    Raises:
        ConfigError: If the URL is not in a recognized GitHub-style form.
    """
    url = remote_url.strip()
    match = _URL_REGEX.match(url) or _SCP_URL_REGEX.match(url)
    if not match:
        raise ConfigError(f"Cannot parse owner/repository from remote URL '{url}'")
    return match.group('host'), match.group('owner'), match.group('name')


def _merge_file(config: Config, path: Path) -> None:
    """Merge a YAML config file into config, section by section."""
    try:
        with open(path, 'r') as f:
            logger.debug(f"Found {path}, loading...")
            file_config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.debug(f"No {path} found")
        return
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing {path}: {e}")

    if not file_config:
        return
    if not isinstance(file_config, dict):
        raise ConfigError(f"Error parsing {path}: expected a mapping at the top level")
    for section in ('repo', 'user', 'tool'):
        value = file_config.get(section)
        if isinstance(value, dict):
            config[section].update(value)


def parse_config(git_cmd: GitInterface, repo_root: Optional[str] = None) -> Config:
    """Parse config from user and repository config files.

    Later sources win: built-in defaults, the user file, then the repository file.
    Host, owner and repository name not set explicitly are taken from the
    configured remote's URL.
    """
    config: Config = {
        'repo': {
            'github_remote': 'origin',
        },
        'user': {},
        'tool': {},
    }

    _merge_file(config, Path(internal_config_file_path()))
    if repo_root:
        _merge_file(config, Path(repo_root) / REPO_CONFIG_FILE)

    repo_config = config['repo']
    if not (repo_config.get('github_host') and repo_config.get('github_repo_owner')
            and repo_config.get('github_repo_name')):
        remote = repo_config['github_remote']
        if remote in git_cmd.remote_names():
            try:
                parsed = parse_remote_url(git_cmd.remote_url(remote))
            except ConfigError as e:
                # Only fatal once the GitHub repository is actually needed
                logger.warning(f"{e}; set repo.github_repo_owner and repo.github_repo_name in {REPO_CONFIG_FILE}")
                return config
            for key, value in zip(('github_host', 'github_repo_owner', 'github_repo_name'), parsed):
                if not repo_config.get(key):
                    repo_config[key] = value
            logger.debug(f"{repo_config['github_host']}:{repo_config['github_repo_owner']}/{repo_config['github_repo_name']}")
        else:
            # Reported as a precondition error once the run starts
            logger.debug(f"Remote '{remote}' not configured; skipping URL parsing")

    return config


def internal_config_file_path() -> str:
    """Get path to the user-level config file."""
    return str(Path.home() / ".pyrebaser.yml")
