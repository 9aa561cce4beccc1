"""
User funds endpoints - wallet, ledger history, deposit and withdrawal requests
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from src.api.dependencies import get_db, require_permission
from src.api.schemas.funds import (
    DepositCreateRequest,
    DepositProofRequest,
    DepositResponse,
    TransactionResponse,
    WalletResponse,
    WithdrawalCreateRequest,
    WithdrawalResponse,
)
from src.auth.permissions import Permission
from src.database import queries
from src.services import funds_review
from src.utils.exceptions import NotFoundError

router = APIRouter(prefix="/user")


@router.get("/wallet", response_model=WalletResponse)
def get_wallet(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_OWN_WALLET))
):
    wallet = queries.get_wallet(db, current_user["user_id"])
    if wallet is None:
        raise NotFoundError("Wallet for user", current_user["user_id"])
    return wallet


@router.get("/transactions", response_model=List[TransactionResponse])
def get_transactions(
    type: Optional[str] = Query(None, description="deposit, withdrawal, trade_buy or trade_sell"),
    status: Optional[str] = Query(None, description="pending or completed"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_OWN_WALLET))
):
    return queries.list_transactions(
        db, user_id=current_user["user_id"], type_=type, status=status, skip=skip, limit=limit
    )


@router.post("/deposits", response_model=DepositResponse, status_code=201)
def create_deposit(
    request: DepositCreateRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.REQUEST_FUNDS))
):
    return funds_review.create_deposit(
        db,
        current_user["user_id"],
        request.amount,
        request.payment_method,
        crypto_type=request.crypto_type,
        transaction_hash=request.transaction_hash,
        proof_notes=request.proof_notes
    )


@router.get("/deposits", response_model=List[DepositResponse])
def get_deposits(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_OWN_WALLET))
):
    return queries.list_deposits(db, user_id=current_user["user_id"])


@router.post("/deposits/{deposit_id}/proof", response_model=DepositResponse)
def submit_deposit_proof(
    deposit_id: int,
    request: DepositProofRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.REQUEST_FUNDS))
):
    """Tell the back office the deposit has been paid"""
    return funds_review.submit_deposit_proof(
        db,
        deposit_id,
        current_user["user_id"],
        transaction_hash=request.transaction_hash,
        proof_notes=request.proof_notes
    )


@router.post("/withdrawals", response_model=WithdrawalResponse, status_code=201)
def create_withdrawal(
    request: WithdrawalCreateRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.REQUEST_FUNDS))
):
    """Request a withdrawal; the amount is held from the wallet until reviewed"""
    return funds_review.create_withdrawal(
        db,
        current_user["user_id"],
        request.amount,
        request.withdrawal_method,
        wallet_address=request.wallet_address,
        bank_details=request.bank_details
    )


@router.get("/withdrawals", response_model=List[WithdrawalResponse])
def get_withdrawals(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_OWN_WALLET))
):
    return queries.list_withdrawals(db, status=queries.ALL_STATUSES, user_id=current_user["user_id"])
