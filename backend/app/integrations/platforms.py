"""Registry of third-party platforms a coach can connect."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..core.enums import IntegrationType

AUTH_OAUTH = "oauth"
AUTH_API_KEY = "api_key"


@dataclass(frozen=True)
class PlatformDefinition:
    name: str
    display_name: str
    integration_type: IntegrationType
    auth: str = AUTH_OAUTH
    authorize_url: Optional[str] = None
    token_url: Optional[str] = None
    profile_url: Optional[str] = None
    scopes: Tuple[str, ...] = ()
    scope_separator: str = " "
    required_fields: Tuple[str, ...] = ()
    # Some providers name the client id parameter differently
    client_id_param: str = "client_id"
    extra_authorize_params: Dict[str, str] = field(default_factory=dict)
    pkce: bool = False

    @property
    def is_oauth(self) -> bool:
        return self.auth == AUTH_OAUTH


_GOOGLE_AUTHORIZE = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN = "https://oauth2.googleapis.com/token"
_GOOGLE_OFFLINE = {"access_type": "offline", "prompt": "consent"}

PLATFORMS: Dict[str, PlatformDefinition] = {
    definition.name: definition
    for definition in (
        PlatformDefinition(
            name="facebook",
            display_name="Facebook",
            integration_type=IntegrationType.SOCIAL,
            authorize_url="https://www.facebook.com/v19.0/dialog/oauth",
            token_url="https://graph.facebook.com/v19.0/oauth/access_token",
            profile_url="https://graph.facebook.com/me?fields=id,name,email,picture",
            scopes=("public_profile", "email", "pages_show_list", "pages_read_engagement"),
            scope_separator=",",
        ),
        PlatformDefinition(
            name="instagram",
            display_name="Instagram",
            integration_type=IntegrationType.SOCIAL,
            authorize_url="https://api.instagram.com/oauth/authorize",
            token_url="https://api.instagram.com/oauth/access_token",
            profile_url="https://graph.instagram.com/me?fields=id,username,account_type,media_count",
            scopes=("user_profile", "user_media"),
            scope_separator=",",
        ),
        PlatformDefinition(
            name="youtube",
            display_name="YouTube",
            integration_type=IntegrationType.SOCIAL,
            authorize_url=_GOOGLE_AUTHORIZE,
            token_url=_GOOGLE_TOKEN,
            profile_url="https://www.googleapis.com/youtube/v3/channels?part=snippet,statistics&mine=true",
            scopes=(
                "https://www.googleapis.com/auth/youtube.readonly",
                "https://www.googleapis.com/auth/userinfo.profile",
            ),
            extra_authorize_params=_GOOGLE_OFFLINE,
        ),
        PlatformDefinition(
            name="twitter",
            display_name="X (Twitter)",
            integration_type=IntegrationType.SOCIAL,
            authorize_url="https://twitter.com/i/oauth2/authorize",
            token_url="https://api.twitter.com/2/oauth2/token",
            profile_url="https://api.twitter.com/2/users/me?user.fields=profile_image_url,public_metrics",
            scopes=("tweet.read", "users.read", "offline.access"),
            pkce=True,
        ),
        PlatformDefinition(
            name="linkedin",
            display_name="LinkedIn",
            integration_type=IntegrationType.SOCIAL,
            authorize_url="https://www.linkedin.com/oauth/v2/authorization",
            token_url="https://www.linkedin.com/oauth/v2/accessToken",
            profile_url="https://api.linkedin.com/v2/userinfo",
            scopes=("openid", "profile", "email"),
        ),
        PlatformDefinition(
            name="tiktok",
            display_name="TikTok",
            integration_type=IntegrationType.SOCIAL,
            authorize_url="https://www.tiktok.com/v2/auth/authorize/",
            token_url="https://open.tiktokapis.com/v2/oauth/token/",
            profile_url="https://open.tiktokapis.com/v2/user/info/?fields=open_id,display_name,avatar_url",
            scopes=("user.info.basic", "video.list"),
            scope_separator=",",
            client_id_param="client_key",
            pkce=True,
        ),
        PlatformDefinition(
            name="calendly",
            display_name="Calendly",
            integration_type=IntegrationType.APP,
            authorize_url="https://auth.calendly.com/oauth/authorize",
            token_url="https://auth.calendly.com/oauth/token",
            profile_url="https://api.calendly.com/users/me",
        ),
        PlatformDefinition(
            name="gmail",
            display_name="Gmail",
            integration_type=IntegrationType.APP,
            authorize_url=_GOOGLE_AUTHORIZE,
            token_url=_GOOGLE_TOKEN,
            profile_url="https://www.googleapis.com/oauth2/v2/userinfo",
            scopes=(
                "https://www.googleapis.com/auth/gmail.readonly",
                "https://www.googleapis.com/auth/gmail.send",
                "https://www.googleapis.com/auth/userinfo.email",
                "https://www.googleapis.com/auth/userinfo.profile",
            ),
            extra_authorize_params=_GOOGLE_OFFLINE,
        ),
        PlatformDefinition(
            name="thinkific",
            display_name="Thinkific",
            integration_type=IntegrationType.COURSE,
            auth=AUTH_API_KEY,
            required_fields=("api_key", "subdomain"),
        ),
        PlatformDefinition(
            name="teachable",
            display_name="Teachable",
            integration_type=IntegrationType.COURSE,
            auth=AUTH_API_KEY,
            required_fields=("api_key", "school_url"),
        ),
        PlatformDefinition(
            name="kajabi",
            display_name="Kajabi",
            integration_type=IntegrationType.COURSE,
            auth=AUTH_API_KEY,
            required_fields=("client_id", "client_secret"),
        ),
        PlatformDefinition(
            name="skool",
            display_name="Skool",
            integration_type=IntegrationType.COURSE,
            auth=AUTH_API_KEY,
            required_fields=("api_key", "group_url"),
        ),
    )
}


def get_platform(name: str) -> Optional[PlatformDefinition]:
    return PLATFORMS.get(name.lower())


def list_platforms() -> List[PlatformDefinition]:
    return list(PLATFORMS.values())
