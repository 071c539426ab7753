# backend/app/routes/v1/integrations.py
"""
Third-party integration routes - API v1

Mounted under /api/v1/integrations. Everything is coach-scoped except the
OAuth callback, which the platform redirects to without our bearer token;
the signed ``state`` identifies the coach there.

Endpoints:
    GET /platforms                          → Supported platforms
    GET /                                   → Coach integrations (masked)
    GET /calendly/events                    → Calendly scheduled events
    POST /{platform}/authorize              → Start an OAuth flow
    GET /{platform}/callback                → OAuth redirect target (public)
    POST /{platform}/connect                → Connect a course platform by API key
    PATCH /{integration_id}/sync-settings   → Update sync settings
    POST /{integration_id}/refresh          → Refresh the access token
    DELETE /{integration_id}                → Disconnect
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import require_coach
from ...api.dependencies.services import get_integration_service
from ...models.user import User
from ...schemas.base_responses import DeleteResponse
from ...schemas.integration import (
    CalendlyEvent,
    CoursePlatformConnect,
    IntegrationResponse,
    OAuthStartResponse,
    PlatformInfo,
    SyncSettingsUpdate,
)
from ...services.integration_service import IntegrationService, mask_integration

router = APIRouter(tags=["integrations-v1"])


def _masked(integration: Any) -> IntegrationResponse:
    return IntegrationResponse.model_validate(mask_integration(integration))


@router.get("/platforms", response_model=List[PlatformInfo])
def list_platforms(
    current_user: User = Depends(require_coach),
    service: IntegrationService = Depends(get_integration_service),
) -> List[PlatformInfo]:
    return [PlatformInfo.model_validate(item) for item in service.supported_platforms()]


@router.get("", response_model=List[IntegrationResponse])
def list_integrations(
    current_user: User = Depends(require_coach),
    service: IntegrationService = Depends(get_integration_service),
) -> List[IntegrationResponse]:
    return [_masked(item) for item in service.list_for_coach(current_user.id)]


@router.get("/calendly/events", response_model=List[CalendlyEvent])
def calendly_events(
    event_status: str = Query("active", alias="status", pattern="^(active|canceled)$"),
    min_start_time: Optional[str] = Query(None),
    max_start_time: Optional[str] = Query(None),
    current_user: User = Depends(require_coach),
    service: IntegrationService = Depends(get_integration_service),
) -> List[CalendlyEvent]:
    events = service.calendly_events(
        current_user.id, status=event_status, min_start_time=min_start_time, max_start_time=max_start_time
    )
    return [CalendlyEvent.model_validate(event) for event in events]


@router.post("/{platform}/authorize", response_model=OAuthStartResponse)
def begin_oauth(
    platform: str,
    current_user: User = Depends(require_coach),
    service: IntegrationService = Depends(get_integration_service),
) -> OAuthStartResponse:
    return OAuthStartResponse.model_validate(service.begin_oauth(current_user.id, platform))


@router.get("/{platform}/callback", response_model=IntegrationResponse)
def oauth_callback(
    platform: str,
    code: str = Query(..., min_length=1),
    state: str = Query(..., min_length=1),
    service: IntegrationService = Depends(get_integration_service),
) -> IntegrationResponse:
    return _masked(service.handle_callback(platform, code, state))


@router.post("/{platform}/connect", response_model=IntegrationResponse, status_code=status.HTTP_201_CREATED)
def connect_course_platform(
    platform: str,
    payload: CoursePlatformConnect,
    current_user: User = Depends(require_coach),
    service: IntegrationService = Depends(get_integration_service),
) -> IntegrationResponse:
    integration = service.connect_course_platform(
        current_user.id, platform, payload.credentials, payload.sync_settings
    )
    return _masked(integration)


@router.patch("/{integration_id}/sync-settings", response_model=IntegrationResponse)
def update_sync_settings(
    integration_id: str,
    payload: SyncSettingsUpdate,
    current_user: User = Depends(require_coach),
    service: IntegrationService = Depends(get_integration_service),
) -> IntegrationResponse:
    return _masked(service.update_sync_settings(current_user.id, integration_id, payload.sync_settings))


@router.post("/{integration_id}/refresh", response_model=IntegrationResponse)
def refresh_integration(
    integration_id: str,
    current_user: User = Depends(require_coach),
    service: IntegrationService = Depends(get_integration_service),
) -> IntegrationResponse:
    return _masked(service.refresh(current_user.id, integration_id))


@router.delete("/{integration_id}", response_model=DeleteResponse)
def disconnect_integration(
    integration_id: str,
    current_user: User = Depends(require_coach),
    service: IntegrationService = Depends(get_integration_service),
) -> DeleteResponse:
    service.disconnect(current_user.id, integration_id)
    return DeleteResponse(message="Integration disconnected")
