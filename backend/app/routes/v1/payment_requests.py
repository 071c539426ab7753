# backend/app/routes/v1/payment_requests.py
"""
Payment request routes - API v1

Mounted under /api/v1/payment-requests. Admins bill coaches for plans;
coaches bill clients for courses or custom amounts. Payers settle by token.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from ...api.dependencies.auth import get_current_active_user, require_coach_or_admin
from ...api.dependencies.services import get_payment_request_service
from ...core.enums import PaymentRequestStatus
from ...core.exceptions import NotFoundException
from ...models.user import User
from ...schemas.base_responses import PaginatedResponse
from ...schemas.billing import PaymentRequestCreate, PaymentRequestPay, PaymentRequestResponse
from ...services.payment_request_service import PaymentRequestService

router = APIRouter(tags=["payment-requests-v1"])


@router.get("", response_model=PaginatedResponse[PaymentRequestResponse])
def list_payment_requests(
    role: Literal["creator", "payer"] = Query("creator"),
    status_filter: Optional[PaymentRequestStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    service: PaymentRequestService = Depends(get_payment_request_service),
) -> PaginatedResponse[PaymentRequestResponse]:
    """Requests the caller sent (``role=creator``) or must pay (``role=payer``)."""
    items, total = service.list_requests(
        current_user, role=role, status=status_filter, page=page, per_page=per_page
    )
    return PaginatedResponse[PaymentRequestResponse].build(
        [PaymentRequestResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.post("", response_model=PaymentRequestResponse, status_code=status.HTTP_201_CREATED)
def create_payment_request(
    payload: PaymentRequestCreate,
    current_user: User = Depends(require_coach_or_admin),
    service: PaymentRequestService = Depends(get_payment_request_service),
) -> PaymentRequestResponse:
    return PaymentRequestResponse.model_validate(service.create_request(current_user, payload))


@router.get("/token/{token}", response_model=PaymentRequestResponse)
def get_by_token(
    token: str,
    current_user: User = Depends(get_current_active_user),
    service: PaymentRequestService = Depends(get_payment_request_service),
) -> PaymentRequestResponse:
    request = service.get_by_token(token)
    if current_user.id not in (request.payer_id, request.created_by_id):
        raise NotFoundException("Payment request not found", code="PAYMENT_REQUEST_NOT_FOUND")
    return PaymentRequestResponse.model_validate(request)


@router.post("/token/{token}/pay", response_model=PaymentRequestResponse)
def pay_payment_request(
    token: str,
    payload: PaymentRequestPay,
    current_user: User = Depends(get_current_active_user),
    service: PaymentRequestService = Depends(get_payment_request_service),
) -> PaymentRequestResponse:
    request = service.pay(token, current_user, payload.payment_method)
    return PaymentRequestResponse.model_validate(request)


@router.post("/{request_id}/cancel", response_model=PaymentRequestResponse)
def cancel_payment_request(
    request_id: str,
    current_user: User = Depends(require_coach_or_admin),
    service: PaymentRequestService = Depends(get_payment_request_service),
) -> PaymentRequestResponse:
    return PaymentRequestResponse.model_validate(service.cancel(request_id, current_user))
