# backend/app/services/plan_service.py
"""
Subscription plan management for admins.

Plans are never hard-deleted: deactivation hides them from new
subscriptions; soft deletion is only allowed for plans that never billed.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from ..core.enums import BillingCycle
from ..core.exceptions import BusinessRuleException, ConflictException, NotFoundException
from ..models.billing import Plan
from ..models.types import utcnow
from ..repositories.factory import RepositoryFactory
from ..schemas.billing import PlanCreate, PlanUpdate
from .base import BaseService

logger = logging.getLogger(__name__)


def monthly_value(plan: Plan, billing_cycle: str) -> int:
    """Monthly revenue contribution of one subscription, in cents."""
    if billing_cycle == BillingCycle.ANNUAL.value:
        return round(plan.annual_price / 12)
    return plan.monthly_price


class PlanService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.plan_repository = RepositoryFactory.create_plan_repository(db)
        self.subscription_repository = RepositoryFactory.create_subscription_repository(db)

    def get_plan(self, plan_id: str, *, include_deleted: bool = False) -> Plan:
        plan = self.plan_repository.get_by_id(plan_id, load_relationships=False)
        if plan is None or (plan.is_deleted and not include_deleted):
            raise NotFoundException("Plan not found", code="PLAN_NOT_FOUND")
        return plan

    @BaseService.measure_operation("create_plan")
    def create_plan(self, data: PlanCreate) -> Plan:
        if self.plan_repository.get_by_name(data.name):
            raise ConflictException(f"A plan named '{data.name}' already exists", code="PLAN_EXISTS")
        with self.transaction():
            plan = self.plan_repository.create(**data.model_dump())
        self.log_operation("plan_created", plan_id=plan.id, name=plan.name)
        return plan

    @BaseService.measure_operation("list_plans")
    def list_plans(self, *, include_inactive: bool = False, include_deleted: bool = False) -> List[Plan]:
        return self.plan_repository.list_plans(include_inactive=include_inactive, include_deleted=include_deleted)

    @BaseService.measure_operation("update_plan")
    def update_plan(self, plan_id: str, data: PlanUpdate) -> Plan:
        plan = self.get_plan(plan_id)
        changes = data.model_dump(exclude_unset=True)
        new_name = changes.get("name")
        if new_name and new_name.lower() != plan.name.lower():
            clash = self.plan_repository.get_by_name(new_name)
            if clash is not None and clash.id != plan.id:
                raise ConflictException(f"A plan named '{new_name}' already exists", code="PLAN_EXISTS")
        if changes.get("is_active") is False:
            self._ensure_no_live_subscriptions(plan)
        with self.transaction():
            for key, value in changes.items():
                setattr(plan, key, value)
        return plan

    @BaseService.measure_operation("deactivate_plan")
    def deactivate_plan(self, plan_id: str) -> Plan:
        plan = self.get_plan(plan_id)
        self._ensure_no_live_subscriptions(plan)
        with self.transaction():
            plan.is_active = False
        return plan

    @BaseService.measure_operation("delete_plan")
    def delete_plan(self, plan_id: str) -> Plan:
        """
        Soft delete.

        Raises:
            BusinessRuleException: If any subscription or transaction references the plan
        """
        plan = self.get_plan(plan_id)
        if self.plan_repository.has_billing_history(plan.id):
            raise BusinessRuleException(
                "Plans with subscriptions or transactions cannot be deleted; deactivate instead",
                code="PLAN_HAS_HISTORY",
            )
        with self.transaction():
            plan.is_deleted = True
            plan.is_active = False
            plan.deleted_at = utcnow()
        return plan

    @BaseService.measure_operation("plan_stats")
    def get_plan_stats(self, plan_id: str) -> Dict[str, Any]:
        plan = self.get_plan(plan_id, include_deleted=True)
        stats = self.plan_repository.plan_stats(plan.id)
        # MRR counts live subscriptions at the plan's monthly price
        stats["monthly_recurring_revenue"] = stats["active_subscriptions"] * plan.monthly_price
        stats["plan_id"] = plan.id
        return stats

    def _ensure_no_live_subscriptions(self, plan: Plan) -> None:
        live = self.plan_repository.count_live_subscriptions(plan.id)
        if live:
            raise BusinessRuleException(
                f"Plan has {live} active subscription(s) and cannot be deactivated",
                code="PLAN_IN_USE",
                details={"active_subscriptions": live},
            )
