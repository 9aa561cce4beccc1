"""
SQLAlchemy database models for the wallet ledger, trading and investment plans
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Text, JSON, Boolean,
    ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum
from src.database.connection import Base

MONEY = Numeric(18, 2)
QUANTITY = Numeric(20, 8)


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRADE_BUY = "trade_buy"
    TRADE_SELL = "trade_sell"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class TradeType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class AssetType(str, Enum):
    STOCK = "stock"
    CRYPTO = "crypto"


class DepositStatus(str, Enum):
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PENDING_MATCHING = "pending_matching"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    APPROVED = "approved"
    REJECTED = "rejected"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvestmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class Wallet(Base):
    """Wallets table - one cash balance per user"""
    __tablename__ = "wallets"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)  # No foreign key - users table not maintained
    balance = Column(MONEY, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="USD")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Transaction(Base):
    """Append-only ledger log; amount is a positive magnitude, type carries the sign"""
    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    type = Column(String(20), nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TransactionStatus.COMPLETED.value)
    reference_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class Holding(Base):
    """Per-user, per-asset position with weighted-average cost basis"""
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("user_id", "asset_type", "symbol", name="uq_holdings_user_asset_symbol"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    asset_type = Column(String(20), nullable=False)
    symbol = Column(String(20), nullable=False)
    asset_name = Column(String(200), nullable=False)
    quantity = Column(QUANTITY, nullable=False)
    average_price = Column(MONEY, nullable=False)
    current_price = Column(MONEY, nullable=False)
    total_cost = Column(MONEY, nullable=False)
    current_value = Column(MONEY, nullable=False)
    profit_loss = Column(MONEY, nullable=False, default=0)
    profit_loss_pct = Column(MONEY, nullable=False, default=0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Trade(Base):
    """Immutable record of one executed buy or sell"""
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    asset_type = Column(String(20), nullable=False)
    symbol = Column(String(20), nullable=False, index=True)
    asset_name = Column(String(200), nullable=False)
    trade_type = Column(String(10), nullable=False)
    quantity = Column(QUANTITY, nullable=False)
    price = Column(MONEY, nullable=False)
    total_amount = Column(MONEY, nullable=False)
    fee = Column(MONEY, nullable=False)
    status = Column(String(20), nullable=False, default="executed")
    executed_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)


class Deposit(Base):
    """Deposit request, credited to the wallet once approved"""
    __tablename__ = "deposits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    payment_method = Column(String(50), nullable=False)
    crypto_type = Column(String(20), nullable=True)
    transaction_hash = Column(String(200), nullable=True)
    proof_notes = Column(Text, nullable=True)
    settlement_details = Column(JSON, nullable=True)
    status = Column(String(30), nullable=False, default=DepositStatus.PENDING.value, index=True)
    admin_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Withdrawal(Base):
    """Withdrawal request; the amount is held from the wallet when requested"""
    __tablename__ = "withdrawals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    withdrawal_method = Column(String(50), nullable=False)
    wallet_address = Column(String(200), nullable=True)
    bank_details = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=WithdrawalStatus.PENDING.value, index=True)
    admin_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class InvestmentPlan(Base):
    """Admin-managed catalog of fixed-term plans"""
    __tablename__ = "investment_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    min_amount = Column(MONEY, nullable=False)
    max_amount = Column(MONEY, nullable=False)
    return_percentage = Column(Numeric(7, 2), nullable=False)
    duration_days = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class UserInvestment(Base):
    """A user's subscription to a plan; end_date is the authoritative maturity date"""
    __tablename__ = "user_investments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("investment_plans.id"), nullable=False)
    amount = Column(MONEY, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=InvestmentStatus.ACTIVE.value, index=True)
    expected_return = Column(MONEY, nullable=False)
    custom_duration_days = Column(Integer, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    plan = relationship("InvestmentPlan")


class AlgorithmApplication(Base):
    """Eligibility questionnaire for the proprietary algorithm plans"""
    __tablename__ = "algorithm_applications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    answers = Column(JSON, nullable=False)
    status = Column(String(20), nullable=False, default=ApplicationStatus.PENDING.value)
    admin_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UserAlgorithmAccess(Base):
    """Grants a user access to a plan, optionally with a custom duration"""
    __tablename__ = "user_algorithm_access"
    __table_args__ = (
        UniqueConstraint("user_id", "plan_id", name="uq_algorithm_access_user_plan"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("investment_plans.id"), nullable=False)
    custom_duration_days = Column(Integer, nullable=True)
    granted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    granted_by = Column(Integer, nullable=True)

    plan = relationship("InvestmentPlan")
