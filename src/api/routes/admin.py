"""
Back-office endpoints - funds review, wallets, plans, algorithm access and maturity
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from src.api.dependencies import get_db, require_permission
from src.api.schemas.admin import (
    AccessGrantRequest,
    ApplicationReviewRequest,
    DepositReviewRequest,
    DurationOverrideRequest,
    MaturityRequest,
    PlanCreateRequest,
    PlanUpdateRequest,
    WalletAdjustRequest,
    WalletCreateRequest,
    WithdrawalReviewRequest,
)
from src.api.schemas.funds import DepositResponse, TransactionResponse, WalletResponse, WithdrawalResponse
from src.api.schemas.investments import AccessResponse, ApplicationResponse, InvestmentResponse, PlanResponse
from src.auth.permissions import Permission
from src.database import queries
from src.services import algorithm_access, funds_review, investments, wallets

router = APIRouter(prefix="/admin")


# ============================================================================
# FUNDS REVIEW
# ============================================================================

@router.get("/deposits", response_model=List[DepositResponse])
def get_deposits(
    status: str = Query(queries.ALL_STATUSES, description="Deposit status, or 'all'"),
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.REVIEW_FUNDS))
):
    return queries.list_deposits(db, status=status)


@router.patch("/deposits/{deposit_id}", response_model=DepositResponse)
def review_deposit(
    deposit_id: int,
    request: DepositReviewRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.REVIEW_FUNDS))
):
    return funds_review.review_deposit(
        db,
        deposit_id,
        request.status,
        reviewer_id=current_user["user_id"],
        admin_notes=request.admin_notes,
        settlement_details=request.settlement_details,
        amount=request.amount
    )


@router.get("/withdrawals", response_model=List[WithdrawalResponse])
def get_withdrawals(
    status: str = Query("pending", description="Withdrawal status, or 'all'"),
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.REVIEW_FUNDS))
):
    return queries.list_withdrawals(db, status=status)


@router.patch("/withdrawals/{withdrawal_id}", response_model=WithdrawalResponse)
def review_withdrawal(
    withdrawal_id: int,
    request: WithdrawalReviewRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.REVIEW_FUNDS))
):
    return funds_review.review_withdrawal(
        db,
        withdrawal_id,
        request.status,
        reviewer_id=current_user["user_id"],
        admin_notes=request.admin_notes
    )


# ============================================================================
# WALLETS AND LEDGER
# ============================================================================

@router.get("/wallets", response_model=List[WalletResponse])
def get_wallets(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_ALL_WALLETS))
):
    return queries.list_wallets(db, skip=skip, limit=limit)


@router.post("/wallets", response_model=WalletResponse, status_code=201)
def open_wallet(
    request: WalletCreateRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.ADJUST_WALLETS))
):
    return wallets.open_wallet(db, request.user_id, request.currency)


@router.patch("/wallets/{wallet_id}", response_model=WalletResponse)
def adjust_wallet(
    wallet_id: int,
    request: WalletAdjustRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.ADJUST_WALLETS))
):
    """Set a wallet balance; the difference is logged as a ledger entry"""
    return wallets.adjust_wallet_balance(db, wallet_id, request.balance)


@router.get("/transactions", response_model=List[TransactionResponse])
def get_transactions(
    user_id: Optional[int] = Query(None),
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_ALL_WALLETS))
):
    return queries.list_transactions(db, user_id=user_id, type_=type, status=status, skip=skip, limit=limit)


# ============================================================================
# INVESTMENT PLANS
# ============================================================================

@router.get("/plans", response_model=List[PlanResponse])
def get_all_plans(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.MANAGE_PLANS))
):
    """Every plan, including inactive ones"""
    return queries.list_plans(db, include_inactive=True)


@router.post("/plans", response_model=PlanResponse, status_code=201)
def create_plan(
    request: PlanCreateRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.MANAGE_PLANS))
):
    return investments.create_plan(
        db,
        request.name,
        request.min_amount,
        request.max_amount,
        request.return_percentage,
        request.duration_days,
        description=request.description,
        is_active=request.is_active
    )


@router.patch("/plans/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: int,
    request: PlanUpdateRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.MANAGE_PLANS))
):
    return investments.update_plan(db, plan_id, **request.model_dump(exclude_unset=True))


@router.patch("/investments/{investment_id}/duration", response_model=InvestmentResponse)
def override_duration(
    investment_id: int,
    request: DurationOverrideRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.MANAGE_PLANS))
):
    return investments.override_investment_duration(db, investment_id, request.custom_duration_days)


@router.post("/investments/mature", response_model=List[InvestmentResponse])
def mature_investments(
    request: Optional[MaturityRequest] = None,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.RUN_MATURITY))
):
    """Pay out every active investment past its end date"""
    as_of = request.as_of if request is not None else None
    return investments.mature_investments(db, as_of)


# ============================================================================
# ALGORITHM ACCESS
# ============================================================================

@router.get("/algo/applications", response_model=List[ApplicationResponse])
def get_applications(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.MANAGE_ALGORITHM_ACCESS))
):
    return queries.list_applications(db, status=status)


@router.patch("/algo/applications/{application_id}", response_model=ApplicationResponse)
def review_application(
    application_id: int,
    request: ApplicationReviewRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.MANAGE_ALGORITHM_ACCESS))
):
    return algorithm_access.review_application(
        db,
        application_id,
        request.status,
        reviewer_id=current_user["user_id"],
        admin_notes=request.admin_notes,
        plan_id=request.plan_id,
        custom_duration_days=request.custom_duration_days
    )


@router.post("/algo/access", response_model=AccessResponse, status_code=201)
def grant_access(
    request: AccessGrantRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.MANAGE_ALGORITHM_ACCESS))
):
    return algorithm_access.grant_algorithm_access(
        db,
        request.user_id,
        request.plan_id,
        custom_duration_days=request.custom_duration_days,
        granted_by=current_user["user_id"]
    )
