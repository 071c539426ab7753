"""Dashboard analytics schemas."""

from typing import Dict, List

from ._strict_base import ORMResponse


class ClientTotals(ORMResponse):
    total: int
    active: int
    new_this_month: int


class EnrollmentTotals(ORMResponse):
    total: int
    completed: int
    completion_rate: float


class LeadTotals(ORMResponse):
    total: int
    by_status: Dict[str, int]
    conversion_rate: float


class ContentTotals(ORMResponse):
    total_pieces: int
    total_views: int
    average_engagement_rate: float


class CoachDashboard(ORMResponse):
    clients: ClientTotals
    enrollments: EnrollmentTotals
    leads: LeadTotals
    content: ContentTotals
    payment_requests_paid_total: int
    payment_requests_pending_total: int


class CoachTotals(ORMResponse):
    total: int
    active: int
    inactive: int
    new_this_month: int


class PlanSubscriptionCount(ORMResponse):
    plan_id: str
    plan_name: str
    active_subscriptions: int


class MonthlyRevenue(ORMResponse):
    month: str
    revenue: int


class AdminDashboard(ORMResponse):
    coaches: CoachTotals
    subscriptions_by_plan: List[PlanSubscriptionCount]
    monthly_recurring_revenue: int
    revenue_by_month: List[MonthlyRevenue]
    transactions_by_status: Dict[str, Dict[str, int]]
