"""
Request/response schemas for investment plans and algorithm access
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    min_amount: Decimal
    max_amount: Decimal
    return_percentage: Decimal
    duration_days: int
    is_active: bool


class InvestRequest(BaseModel):
    plan_id: int
    amount: Decimal


class InvestmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    plan_id: int
    amount: Decimal
    start_date: datetime
    end_date: datetime
    status: str
    expected_return: Decimal
    custom_duration_days: Optional[int] = None
    completed_at: Optional[datetime] = None
    plan: Optional[PlanResponse] = None


class ApplicationRequest(BaseModel):
    """Eligibility questionnaire; free-form answers keyed by question"""
    answers: Dict[str, Any] = Field(..., description="Questionnaire answers")


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    answers: Dict[str, Any]
    status: str
    admin_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    created_at: datetime


class AccessResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    plan_id: int
    custom_duration_days: Optional[int] = None
    granted_at: datetime
    granted_by: Optional[int] = None


class ApplicationStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    application: Optional[ApplicationResponse] = None
    access: List[AccessResponse] = []


class EligiblePlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plan: PlanResponse
    access_id: int
    custom_duration_days: Optional[int] = None
    effective_duration_days: int
    granted_at: datetime
