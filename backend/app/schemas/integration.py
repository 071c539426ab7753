"""Third-party integration schemas. Tokens are always masked in responses."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..core.enums import IntegrationType
from ._strict_base import ORMResponse, StrictRequestModel


class PlatformInfo(ORMResponse):
    name: str
    display_name: str
    integration_type: IntegrationType
    auth: str
    configured: bool
    required_fields: List[str] = Field(default_factory=list)


class IntegrationResponse(ORMResponse):
    id: str
    coach_id: str
    integration_type: IntegrationType
    platform_name: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    profile_data: Optional[Dict[str, Any]] = None
    config: Optional[Dict[str, Any]] = None
    sync_settings: Optional[Dict[str, Any]] = None
    is_active: bool
    last_sync_at: Optional[datetime] = None
    sync_error: Optional[str] = None
    created_at: datetime


class OAuthStartResponse(ORMResponse):
    platform: str
    authorization_url: str
    state: str


class OAuthCallback(StrictRequestModel):
    code: str = Field(min_length=1)
    state: str = Field(min_length=1)


class CoursePlatformConnect(StrictRequestModel):
    credentials: Dict[str, str]
    sync_settings: Optional[Dict[str, Any]] = None


class SyncSettingsUpdate(StrictRequestModel):
    sync_settings: Dict[str, Any]


class CalendlyEvent(ORMResponse):
    uri: str
    name: Optional[str] = None
    status: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
