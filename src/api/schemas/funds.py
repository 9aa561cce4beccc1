"""
Request/response schemas for wallets, ledger history, deposits and withdrawals
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from datetime import datetime
from decimal import Decimal


class WalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    balance: Decimal
    currency: str
    created_at: datetime
    updated_at: datetime


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: str
    amount: Decimal
    description: Optional[str] = None
    status: str
    reference_id: Optional[str] = None
    created_at: datetime


class DepositCreateRequest(BaseModel):
    amount: Decimal
    payment_method: str = Field(..., min_length=1, max_length=50)
    crypto_type: Optional[str] = None
    transaction_hash: Optional[str] = None
    proof_notes: Optional[str] = None


class DepositProofRequest(BaseModel):
    transaction_hash: Optional[str] = None
    proof_notes: Optional[str] = None


class DepositResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    amount: Decimal
    payment_method: str
    crypto_type: Optional[str] = None
    transaction_hash: Optional[str] = None
    proof_notes: Optional[str] = None
    settlement_details: Optional[Dict[str, Any]] = None
    status: str
    admin_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    created_at: datetime


class WithdrawalCreateRequest(BaseModel):
    amount: Decimal
    withdrawal_method: str = Field(..., min_length=1, max_length=50)
    wallet_address: Optional[str] = None
    bank_details: Optional[str] = None


class WithdrawalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    amount: Decimal
    withdrawal_method: str
    wallet_address: Optional[str] = None
    bank_details: Optional[str] = None
    status: str
    admin_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    created_at: datetime
