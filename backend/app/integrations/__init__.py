"""Third-party platform integrations for CoachDesk."""

from .oauth_client import OAuthClient, OAuthError
from .platforms import PLATFORMS, PlatformDefinition, get_platform, list_platforms

__all__ = ["OAuthClient", "OAuthError", "PLATFORMS", "PlatformDefinition", "get_platform", "list_platforms"]
