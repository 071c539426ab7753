# backend/app/services/integration_service.py
"""
Integration Service for CoachDesk.

Connects coaches to social, scheduling and course platforms:
- OAuth platforms: authorization URL with a signed ``state``, code exchange,
  profile fetch, token refresh
- Course platforms: API credentials stored in ``config``
- Calendly: scheduled events through the stored token

Tokens and API secrets are masked in everything this service hands back
to the API layer.
"""

import base64
from datetime import datetime, timedelta
import hashlib
import logging
import secrets
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from sqlalchemy.orm import Session

from ..auth import create_signed_state, decode_signed_state
from ..core.config import settings
from ..core.exceptions import (
    BusinessRuleException,
    ConflictException,
    IntegrationException,
    NotFoundException,
    ValidationException,
)
from ..integrations.oauth_client import OAuthClient, OAuthError
from ..integrations.platforms import PlatformDefinition, get_platform, list_platforms
from ..models.integration import Integration
from ..models.types import utcnow
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

MASK = "***"
SECRET_CONFIG_KEYS = frozenset({"api_key", "client_secret", "access_token", "webhook_secret"})
CALENDLY_API = "https://api.calendly.com"


def mask_integration(integration: Integration) -> Dict[str, Any]:
    """Response payload for an integration with every credential replaced by ``***``."""
    config = dict(integration.config or {})
    for key in list(config):
        if key in SECRET_CONFIG_KEYS and config[key]:
            config[key] = MASK
    return {
        "id": integration.id,
        "coach_id": integration.coach_id,
        "integration_type": integration.integration_type,
        "platform_name": integration.platform_name,
        "access_token": MASK if integration.access_token else None,
        "refresh_token": MASK if integration.refresh_token else None,
        "token_expires_at": integration.token_expires_at,
        "scope": integration.scope,
        "profile_data": integration.profile_data,
        "config": config,
        "sync_settings": integration.sync_settings,
        "is_active": integration.is_active,
        "last_sync_at": integration.last_sync_at,
        "sync_error": integration.sync_error,
        "created_at": integration.created_at,
    }


def _pkce_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def redirect_uri_for(platform: str) -> str:
    return f"{settings.api_base_url.rstrip('/')}/api/v1/integrations/{platform}/callback"


class IntegrationService(BaseService):
    def __init__(self, db: Session, transport: Optional[httpx.BaseTransport] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_integration_repository(db)
        self._transport = transport

    # Platforms

    def supported_platforms(self) -> List[Dict[str, Any]]:
        return [
            {
                "name": definition.name,
                "display_name": definition.display_name,
                "integration_type": definition.integration_type,
                "auth": definition.auth,
                "configured": settings.oauth_client(definition.name).configured if definition.is_oauth else True,
                "required_fields": list(definition.required_fields),
            }
            for definition in list_platforms()
        ]

    def _platform(self, name: str) -> PlatformDefinition:
        definition = get_platform(name)
        if definition is None:
            raise NotFoundException(f"Unsupported platform: {name}", code="PLATFORM_NOT_FOUND")
        return definition

    def _oauth_platform(self, name: str) -> PlatformDefinition:
        definition = self._platform(name)
        if not definition.is_oauth:
            raise ValidationException(f"{definition.display_name} does not use OAuth", code="NOT_OAUTH_PLATFORM")
        return definition

    def _client(self, definition: PlatformDefinition) -> OAuthClient:
        credentials = settings.oauth_client(definition.name)
        if not credentials.configured:
            raise BusinessRuleException(
                f"{definition.display_name} is not configured on this server", code="PLATFORM_NOT_CONFIGURED"
            )
        return OAuthClient(
            definition,
            client_id=credentials.client_id,
            client_secret=credentials.client_secret.get_secret_value(),
            transport=self._transport,
        )

    # Reads

    def list_for_coach(self, coach_id: str) -> List[Integration]:
        return self.repository.list_for_coach(coach_id)

    def get_for_coach(self, coach_id: str, integration_id: str) -> Integration:
        integration = self.repository.get_by_id(integration_id, load_relationships=False)
        if integration is None or integration.coach_id != coach_id:
            raise NotFoundException("Integration not found", code="INTEGRATION_NOT_FOUND")
        return integration

    # OAuth

    @BaseService.measure_operation("begin_oauth")
    def begin_oauth(self, coach_id: str, platform: str) -> Dict[str, str]:
        """Build the provider authorization URL. The ``state`` JWT carries the coach and platform."""
        definition = self._oauth_platform(platform)
        credentials = settings.oauth_client(definition.name)
        if not credentials.configured:
            raise BusinessRuleException(
                f"{definition.display_name} is not configured on this server", code="PLATFORM_NOT_CONFIGURED"
            )
        claims: Dict[str, Any] = {"coach_id": coach_id, "platform": definition.name}
        params: Dict[str, str] = {
            definition.client_id_param: credentials.client_id,
            "redirect_uri": redirect_uri_for(definition.name),
            "response_type": "code",
            **definition.extra_authorize_params,
        }
        if definition.scopes:
            params["scope"] = definition.scope_separator.join(definition.scopes)
        if definition.pkce:
            verifier = secrets.token_urlsafe(48)
            claims["code_verifier"] = verifier
            params["code_challenge"] = _pkce_challenge(verifier)
            params["code_challenge_method"] = "S256"
        state = create_signed_state(claims)
        params["state"] = state
        return {
            "platform": definition.name,
            "authorization_url": f"{definition.authorize_url}?{urlencode(params)}",
            "state": state,
        }

    @BaseService.measure_operation("oauth_callback")
    def handle_callback(self, platform: str, code: str, state: str) -> Integration:
        """
        Finish an OAuth flow: verify state, exchange the code, fetch the profile, upsert.

        Raises:
            UnauthorizedException: Bad or expired state
            ValidationException: State issued for another platform
            IntegrationException: The platform refused the exchange
        """
        definition = self._oauth_platform(platform)
        claims = decode_signed_state(state)
        if claims.get("platform") != definition.name:
            raise ValidationException("OAuth state does not match platform", code="STATE_MISMATCH")
        coach_id = str(claims["coach_id"])
        client = self._client(definition)
        try:
            tokens = client.exchange_code(
                code, redirect_uri_for(definition.name), code_verifier=claims.get("code_verifier")
            )
            profile = client.fetch_profile(tokens["access_token"])
        except OAuthError as exc:
            raise IntegrationException(definition.name, str(exc), details={"status_code": exc.status_code}) from exc

        now = utcnow()
        with self.transaction():
            integration = self.repository.get_for_platform(coach_id, definition.name)
            if integration is None:
                integration = self.repository.create(
                    coach_id=coach_id,
                    integration_type=definition.integration_type.value,
                    platform_name=definition.name,
                    sync_settings={"auto_sync": True, "sync_frequency": "daily"},
                )
            self._apply_tokens(integration, tokens, now)
            integration.profile_data = self._normalize_profile(definition, profile)
            integration.config = {**(integration.config or {}), **self._profile_config(definition, profile)}
            integration.is_active = True
            integration.sync_error = None
            integration.last_sync_at = now
        self.log_operation("integration_connected", coach_id=coach_id, platform=definition.name)
        return integration

    @staticmethod
    def _apply_tokens(integration: Integration, tokens: Dict[str, Any], now: datetime) -> None:
        integration.access_token = tokens["access_token"]
        if tokens.get("refresh_token"):
            integration.refresh_token = tokens["refresh_token"]
        expires_in = tokens.get("expires_in")
        integration.token_expires_at = now + timedelta(seconds=int(expires_in)) if expires_in else None
        if tokens.get("scope"):
            integration.scope = str(tokens["scope"])[:500]

    @staticmethod
    def _normalize_profile(definition: PlatformDefinition, profile: Dict[str, Any]) -> Dict[str, Any]:
        if definition.name == "calendly" and isinstance(profile.get("resource"), dict):
            return profile["resource"]
        if definition.name == "youtube" and profile.get("items"):
            return profile["items"][0]
        if isinstance(profile.get("data"), dict):
            data = profile["data"]
            return data.get("user", data) if isinstance(data.get("user"), dict) else data
        return profile

    @staticmethod
    def _profile_config(definition: PlatformDefinition, profile: Dict[str, Any]) -> Dict[str, Any]:
        if definition.name == "calendly" and isinstance(profile.get("resource"), dict):
            resource = profile["resource"]
            return {
                "user_uri": resource.get("uri"),
                "organization_uri": resource.get("current_organization"),
                "scheduling_url": resource.get("scheduling_url"),
            }
        return {}

    # Course platforms

    @BaseService.measure_operation("connect_course_platform")
    def connect_course_platform(
        self,
        coach_id: str,
        platform: str,
        credentials: Dict[str, str],
        sync_settings: Optional[Dict[str, Any]] = None,
    ) -> Integration:
        definition = self._platform(platform)
        if definition.is_oauth:
            raise ValidationException(f"{definition.display_name} connects through OAuth", code="OAUTH_PLATFORM")
        missing = [name for name in definition.required_fields if not (credentials.get(name) or "").strip()]
        if missing:
            raise ValidationException(
                f"Missing required fields: {', '.join(missing)}",
                code="MISSING_FIELDS",
                details={"missing": missing},
            )
        if self.repository.get_for_platform(coach_id, definition.name) is not None:
            raise ConflictException(f"{definition.display_name} is already connected", code="INTEGRATION_EXISTS")
        with self.transaction():
            integration = self.repository.create(
                coach_id=coach_id,
                integration_type=definition.integration_type.value,
                platform_name=definition.name,
                config={key: value.strip() for key, value in credentials.items()},
                sync_settings=sync_settings or {"auto_sync": False},
                is_active=True,
            )
        self.log_operation("integration_connected", coach_id=coach_id, platform=definition.name)
        return integration

    def update_sync_settings(self, coach_id: str, integration_id: str, sync_settings: Dict[str, Any]) -> Integration:
        integration = self.get_for_coach(coach_id, integration_id)
        with self.transaction():
            integration.sync_settings = {**(integration.sync_settings or {}), **sync_settings}
        return integration

    @BaseService.measure_operation("disconnect_integration")
    def disconnect(self, coach_id: str, integration_id: str) -> None:
        integration = self.get_for_coach(coach_id, integration_id)
        with self.transaction():
            self.db.delete(integration)
        self.log_operation("integration_disconnected", coach_id=coach_id, platform=integration.platform_name)

    # Token refresh

    def refresh(self, coach_id: str, integration_id: str) -> Integration:
        integration = self.get_for_coach(coach_id, integration_id)
        self._refresh(integration)
        return integration

    def _refresh(self, integration: Integration) -> None:
        """
        Refresh the access token, committing the outcome either way.

        A rejected grant deactivates the integration so the coach reconnects.
        """
        definition = self._oauth_platform(integration.platform_name)
        if not integration.refresh_token:
            raise BusinessRuleException("Integration has no refresh token", code="NO_REFRESH_TOKEN")
        client = self._client(definition)
        try:
            tokens = client.refresh(integration.refresh_token)
        except OAuthError as exc:
            with self.transaction():
                integration.sync_error = str(exc)
                if exc.grant_rejected:
                    integration.is_active = False
            self.logger.warning(
                "Token refresh failed for %s integration %s: %s", definition.name, integration.id, exc
            )
            raise IntegrationException(definition.name, "Token refresh failed", details={"status_code": exc.status_code}) from exc
        with self.transaction():
            self._apply_tokens(integration, tokens, utcnow())
            integration.sync_error = None

    @BaseService.measure_operation("refresh_expiring_tokens")
    def refresh_expiring(self, now: Optional[datetime] = None) -> Dict[str, int]:
        current = now or utcnow()
        horizon = current + timedelta(minutes=settings.integration_refresh_margin_minutes)
        refreshed = failed = 0
        for integration in self.repository.list_expiring(horizon):
            definition = get_platform(integration.platform_name)
            if definition is None or not definition.is_oauth:
                continue
            try:
                self._refresh(integration)
            except (IntegrationException, BusinessRuleException):
                failed += 1
                continue
            refreshed += 1
        if refreshed or failed:
            self.log_operation("integration_tokens_refreshed", refreshed=refreshed, failed=failed)
        return {"refreshed": refreshed, "failed": failed}

    # Calendly

    @BaseService.measure_operation("calendly_events")
    def calendly_events(
        self,
        coach_id: str,
        *,
        status: str = "active",
        min_start_time: Optional[str] = None,
        max_start_time: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        integration = self.repository.get_for_platform(coach_id, "calendly")
        if integration is None or not integration.is_active:
            raise NotFoundException("Calendly is not connected", code="INTEGRATION_NOT_FOUND")
        if integration.token_expires_at is not None and integration.token_expires_at <= utcnow():
            self._refresh(integration)
        user_uri = (integration.config or {}).get("user_uri")
        if not user_uri:
            raise BusinessRuleException("Calendly profile is incomplete; reconnect", code="CALENDLY_PROFILE_MISSING")
        params: Dict[str, Any] = {"user": user_uri, "status": status}
        if min_start_time:
            params["min_start_time"] = min_start_time
        if max_start_time:
            params["max_start_time"] = max_start_time
        client = self._client(self._platform("calendly"))
        try:
            payload = client.get_json(f"{CALENDLY_API}/scheduled_events", integration.access_token, params=params)
        except OAuthError as exc:
            raise IntegrationException("calendly", str(exc), details={"status_code": exc.status_code}) from exc
        with self.transaction():
            integration.last_sync_at = utcnow()
        return list(payload.get("collection") or [])
