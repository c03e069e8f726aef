"""Microsoft Teams connector (Graph API via the integration manager)."""

from src.resolvers.teams.config import TeamsSettings, get_teams_settings
from src.resolvers.teams.resolver import TeamsResolver, encode_segment

__all__ = ["TeamsResolver", "TeamsSettings", "get_teams_settings", "encode_segment"]
