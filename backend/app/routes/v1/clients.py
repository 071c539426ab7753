# backend/app/routes/v1/clients.py
"""
Coach roster routes - API v1

Mounted under /api/v1/clients. Coaches manage the clients linked to them
and send invites; clients accept invites.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import require_client, require_coach
from ...api.dependencies.services import get_client_service
from ...core.enums import ClientCoachStatus
from ...models.user import User
from ...schemas.base_responses import DeleteResponse, PaginatedResponse
from ...schemas.coach import (
    ClientAdd,
    ClientInviteCreate,
    ClientInviteResponse,
    ClientRelationshipResponse,
    ClientRelationshipUpdate,
    InviteAccept,
)
from ...services.client_service import ClientService

router = APIRouter(tags=["clients-v1"])


@router.get("", response_model=PaginatedResponse[ClientRelationshipResponse])
def list_clients(
    search: Optional[str] = Query(None, max_length=100),
    status_filter: Optional[ClientCoachStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
) -> PaginatedResponse[ClientRelationshipResponse]:
    links, total = service.list_clients(
        current_user.id, search=search, status=status_filter, page=page, per_page=per_page
    )
    return PaginatedResponse[ClientRelationshipResponse].build(
        [ClientRelationshipResponse.model_validate(link) for link in links], total, page, per_page
    )


@router.post("", response_model=ClientRelationshipResponse, status_code=status.HTTP_201_CREATED)
def add_client(
    payload: ClientAdd,
    current_user: User = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
) -> ClientRelationshipResponse:
    """Add a client by email. Unknown emails get a new account and a setup link."""
    return ClientRelationshipResponse.model_validate(service.add_client(current_user, payload))


@router.get("/invites", response_model=List[ClientInviteResponse])
def list_invites(
    include_accepted: bool = Query(False),
    current_user: User = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
) -> List[ClientInviteResponse]:
    return [
        ClientInviteResponse.model_validate(invite)
        for invite in service.list_invites(current_user.id, include_accepted=include_accepted)
    ]


@router.post("/invites", response_model=ClientInviteResponse, status_code=status.HTTP_201_CREATED)
def invite_client(
    payload: ClientInviteCreate,
    current_user: User = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
) -> ClientInviteResponse:
    return ClientInviteResponse.model_validate(service.invite_client(current_user, payload))


@router.post("/invites/accept", response_model=ClientRelationshipResponse)
def accept_invite(
    payload: InviteAccept,
    current_user: User = Depends(require_client),
    service: ClientService = Depends(get_client_service),
) -> ClientRelationshipResponse:
    return ClientRelationshipResponse.model_validate(service.accept_invite(current_user, payload.token))


@router.get("/{client_id}", response_model=ClientRelationshipResponse)
def get_client(
    client_id: str,
    current_user: User = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
) -> ClientRelationshipResponse:
    return ClientRelationshipResponse.model_validate(service.get_client(current_user.id, client_id))


@router.patch("/{client_id}", response_model=ClientRelationshipResponse)
def update_client(
    client_id: str,
    payload: ClientRelationshipUpdate,
    current_user: User = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
) -> ClientRelationshipResponse:
    link = service.update_relationship(current_user.id, client_id, payload)
    return ClientRelationshipResponse.model_validate(link)


@router.delete("/{client_id}", response_model=DeleteResponse)
def remove_client(
    client_id: str,
    current_user: User = Depends(require_coach),
    service: ClientService = Depends(get_client_service),
) -> DeleteResponse:
    """Unlink the client. The client account itself is kept."""
    service.remove_client(current_user.id, client_id)
    return DeleteResponse(message="Client removed")
