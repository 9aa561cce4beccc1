"""
Request schemas for back-office endpoints
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal


class DepositReviewRequest(BaseModel):
    status: str = Field(..., description="approved, rejected, awaiting_payment, pending_matching or awaiting_confirmation")
    admin_notes: Optional[str] = None
    settlement_details: Optional[Dict[str, Any]] = None
    amount: Optional[Decimal] = Field(None, description="Corrected amount to credit on approval")


class WithdrawalReviewRequest(BaseModel):
    status: str = Field(..., description="approved or rejected")
    admin_notes: Optional[str] = None


class WalletCreateRequest(BaseModel):
    user_id: int
    currency: Optional[str] = None


class WalletAdjustRequest(BaseModel):
    balance: Decimal


class PlanCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    min_amount: Decimal
    max_amount: Decimal
    return_percentage: Decimal
    duration_days: int
    is_active: bool = True


class PlanUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    return_percentage: Optional[Decimal] = None
    duration_days: Optional[int] = None
    is_active: Optional[bool] = None


class ApplicationReviewRequest(BaseModel):
    status: str = Field(..., description="under_review, approved or rejected")
    admin_notes: Optional[str] = None
    plan_id: Optional[int] = Field(None, description="Plan to grant when approving")
    custom_duration_days: Optional[int] = None


class AccessGrantRequest(BaseModel):
    user_id: int
    plan_id: int
    custom_duration_days: Optional[int] = None


class DurationOverrideRequest(BaseModel):
    custom_duration_days: int


class MaturityRequest(BaseModel):
    as_of: Optional[datetime] = Field(None, description="Cut-off time; defaults to now")
