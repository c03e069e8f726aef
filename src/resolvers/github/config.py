"""GitHub connector settings."""

from __future__ import annotations

from functools import lru_cache

from src.resolvers.config import ConnectorSettings


class GitHubSettings(ConnectorSettings):
    GITHUB_BASE_URL: str = "https://api.github.com"
    GITHUB_OAUTH_TOKEN_URL: str = "https://github.com/login/oauth/access_token"

    # Auth, tried in this order
    GITHUB_ACCESS_TOKEN: str = ""
    GITHUB_CLIENT_ID: str = ""
    GITHUB_CLIENT_SECRET: str = ""
    GITHUB_AUTH_CODE: str = ""
    GITHUB_REFRESH_TOKEN: str = ""

    # GitHub App (private key is a base64-encoded PEM)
    GITHUB_APP_ID: str = ""
    GITHUB_APP_PRIVATE_KEY: str = ""
    GITHUB_INSTALLATION_ID: str = ""

    GITHUB_POLL_INTERVAL_MINUTES: int = 30


@lru_cache
def get_github_settings() -> GitHubSettings:
    return GitHubSettings()
