# backend/app/routes/v1/transactions.py
"""
Transaction and invoice routes - API v1

Mounted under /api/v1/transactions. Admins record and settle payments;
coaches read their own invoices.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ...api.dependencies.auth import require_admin, require_coach_or_admin
from ...core.enums import TransactionStatus
from ...core.exceptions import NotFoundException
from ...database import get_db
from ...models.billing import Transaction
from ...models.user import User
from ...schemas.base_responses import PaginatedResponse
from ...schemas.billing import (
    TransactionCreate,
    TransactionFail,
    TransactionRefund,
    TransactionResponse,
    TransactionStats,
)
from ...services.transaction_service import TransactionService

router = APIRouter(tags=["transactions-v1"])


def _visible(transaction: Transaction, user: User) -> Transaction:
    if not user.is_admin and transaction.coach_id != user.id:
        raise NotFoundException("Transaction not found", code="TRANSACTION_NOT_FOUND")
    return transaction


@router.get("", response_model=PaginatedResponse[TransactionResponse])
def list_transactions(
    coach_id: Optional[str] = Query(None),
    plan_id: Optional[str] = Query(None),
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> PaginatedResponse[TransactionResponse]:
    if not current_user.is_admin:
        coach_id = current_user.id
    items, total = TransactionService(db).list_transactions(
        coach_id=coach_id,
        plan_id=plan_id,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        page=page,
        per_page=per_page,
    )
    return PaginatedResponse[TransactionResponse].build(
        [TransactionResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> TransactionResponse:
    return TransactionResponse.model_validate(TransactionService(db).create_transaction(payload))


@router.get("/failed", response_model=List[TransactionResponse])
def failed_transactions(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> List[TransactionResponse]:
    return [TransactionResponse.model_validate(t) for t in TransactionService(db).list_failed(limit)]


@router.get("/pending", response_model=List[TransactionResponse])
def stale_pending_transactions(
    older_than_minutes: int = Query(60, ge=0),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> List[TransactionResponse]:
    transactions = TransactionService(db).list_stale_pending(older_than_minutes)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.get("/stats", response_model=TransactionStats)
def transaction_stats(
    coach_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> TransactionStats:
    """Coaches always get their own figures."""
    if not current_user.is_admin:
        coach_id = current_user.id
    stats = TransactionService(db).stats(coach_id=coach_id, date_from=date_from, date_to=date_to)
    return TransactionStats(**stats)


@router.get("/invoice/{invoice_number}", response_model=TransactionResponse)
def get_by_invoice(
    invoice_number: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> TransactionResponse:
    transaction = TransactionService(db).get_by_invoice_number(invoice_number)
    return TransactionResponse.model_validate(_visible(transaction, current_user))


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_coach_or_admin),
) -> TransactionResponse:
    transaction = TransactionService(db).get_transaction(transaction_id)
    return TransactionResponse.model_validate(_visible(transaction, current_user))


@router.post("/{transaction_id}/complete", response_model=TransactionResponse)
def complete_transaction(
    transaction_id: str,
    payment_method: Optional[str] = Query(None, max_length=50),
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> TransactionResponse:
    transaction = TransactionService(db).mark_completed(transaction_id, payment_method)
    return TransactionResponse.model_validate(transaction)


@router.post("/{transaction_id}/fail", response_model=TransactionResponse)
def fail_transaction(
    transaction_id: str,
    payload: TransactionFail,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> TransactionResponse:
    return TransactionResponse.model_validate(TransactionService(db).mark_failed(transaction_id, payload.reason))


@router.post("/{transaction_id}/refund", response_model=TransactionResponse)
def refund_transaction(
    transaction_id: str,
    payload: TransactionRefund,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> TransactionResponse:
    """Full or partial refund. Omitting the amount refunds whatever remains."""
    transaction = TransactionService(db).refund(transaction_id, payload.amount, payload.reason)
    return TransactionResponse.model_validate(transaction)
