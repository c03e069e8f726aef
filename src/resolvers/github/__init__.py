"""GitHub connector: issues, repositories, contents, orgs and users."""

from src.resolvers.github.config import GitHubSettings, get_github_settings
from src.resolvers.github.resolver import GitHubResolver, build_app_jwt

__all__ = ["GitHubResolver", "GitHubSettings", "get_github_settings", "build_app_jwt"]
