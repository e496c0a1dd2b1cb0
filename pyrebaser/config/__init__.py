"""Config module."""

from typing import Dict, Any
from pydantic import ValidationError

from ..typing import ConfigError
from .models import RepoConfig, UserConfig, RebaserConfig, ToolConfig

class Config(RebaserConfig):
    """Config object holding repository, user and tool config.
    
    Built from the nested dict produced by the config parser, so that each
    section is validated by its own Pydantic model.
    """
    def __init__(self, config: Dict[str, Dict[str, Any]]):
        """Initialize with parsed config dict.

        Raises:
            ConfigError: If a section holds a value of the wrong type or range
        """
        repo_config = config.get('repo', {})
        user_config = config.get('user', {})
        tool_section = config.get('tool', {})
        tool_config = tool_section.get('pyrebaser', tool_section)

        try:
            super().__init__(
                repo=RepoConfig.model_validate(repo_config),
                user=UserConfig.model_validate(user_config),
                tool=ToolConfig.model_validate(tool_config),
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

def default_config() -> Config:
    """Get default config without parsing git."""
    return Config({
        'repo': {
            'github_remote': 'origin',
        },
        'user': {},
        'tool': {
            'pyrebaser': {
                'order': 'listing',
                'max_passes': 0,
            }
        }
    })
