"""Pydantic request/response schemas for the CoachDesk API."""

from .base_responses import DeleteResponse, PaginatedResponse, SuccessResponse

__all__ = ["DeleteResponse", "PaginatedResponse", "SuccessResponse"]
