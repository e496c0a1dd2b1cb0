"""Pydantic models for config types."""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

StackOrder = Literal["listing", "stack"]

class RepoConfig(BaseModel):
    """Repository configuration."""
    github_remote: str = "origin"
    github_host: Optional[str] = None
    github_repo_owner: Optional[str] = None
    github_repo_name: Optional[str] = None
    default_branch: Optional[str] = None  # Falls back to the GitHub default branch

    model_config = ConfigDict(extra="allow", validate_assignment=True)  # Allow extra fields for forward compatibility

class UserConfig(BaseModel):
    """User configuration."""
    fetch: bool = True
    stash: bool = True
    fast_forward: bool = True
    log_git_commands: bool = False

    model_config = ConfigDict(extra="allow", validate_assignment=True)

class ToolConfig(BaseModel):
    """Tool configuration."""
    order: StackOrder = "listing"
    max_passes: int = Field(default=0, ge=0)  # 0 means run until fixpoint

    model_config = ConfigDict(extra="allow", validate_assignment=True)

class RebaserConfig(BaseModel):
    """Full pyrebaser configuration."""
    repo: RepoConfig = Field(default_factory=RepoConfig)
    user: UserConfig = Field(default_factory=UserConfig)
    tool: ToolConfig = Field(default_factory=ToolConfig)

    model_config = ConfigDict(extra="allow", validate_assignment=True)
