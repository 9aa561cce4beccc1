"""
Investment plan and algorithm eligibility endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Any, Dict, List
from src.api.dependencies import get_db, require_permission
from src.api.schemas.investments import (
    ApplicationRequest,
    ApplicationResponse,
    ApplicationStatusResponse,
    EligiblePlanResponse,
    InvestmentResponse,
    InvestRequest,
    PlanResponse,
)
from src.auth.permissions import Permission
from src.database import queries
from src.services import algorithm_access
from src.services.investments import subscribe

router = APIRouter()


@router.get("/investments/plans", response_model=List[PlanResponse])
def get_plans(db: Session = Depends(get_db)):
    """Active plans; public"""
    return queries.list_plans(db)


@router.post("/investments/invest", response_model=InvestmentResponse, status_code=201)
def invest(
    request: InvestRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.INVEST))
):
    return subscribe(db, current_user["user_id"], request.plan_id, request.amount)


@router.get("/investments/my-investments", response_model=List[InvestmentResponse])
def get_my_investments(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_OWN_WALLET))
):
    return queries.list_user_investments(db, current_user["user_id"])


@router.post("/algo/apply", response_model=ApplicationResponse, status_code=201)
def apply_for_algorithm(
    request: ApplicationRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.APPLY_ALGORITHM))
):
    return algorithm_access.submit_application(db, current_user["user_id"], request.answers)


@router.get("/algo/status", response_model=ApplicationStatusResponse)
def get_algorithm_status(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.APPLY_ALGORITHM))
):
    return algorithm_access.get_application_status(db, current_user["user_id"])


@router.get("/algo/eligible-plans", response_model=List[EligiblePlanResponse])
def get_eligible_plans(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.INVEST))
):
    return algorithm_access.get_eligible_plans(db, current_user["user_id"])
