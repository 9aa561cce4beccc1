"""
Database query functions for wallets, ledger history, trading, funds requests and plans
"""
from sqlalchemy.orm import Session
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from typing import List, Optional
from src.database.models import (
    AlgorithmApplication,
    Deposit,
    Holding,
    InvestmentPlan,
    Trade,
    Transaction,
    UserInvestment,
    Wallet,
    Withdrawal,
    WithdrawalStatus,
)
from src.utils.exceptions import (
    DatabaseError,
    DatabaseConnectionError,
    DatabaseQueryError,
    ValidationError
)

ALL_STATUSES = "all"


def _validate_page(skip: int, limit: int, max_limit: int = 1000):
    if skip < 0:
        raise ValidationError("skip must be non-negative", "skip")
    if limit < 0 or limit > max_limit:
        raise ValidationError(f"limit must be between 0 and {max_limit}", "limit")


# ============================================================================
# WALLET QUERIES
# ============================================================================

def get_wallet(db: Session, user_id: int) -> Optional[Wallet]:
    """Get the wallet of a user"""
    try:
        if user_id <= 0:
            raise ValidationError("user_id must be positive", "user_id")

        return db.query(Wallet).filter(Wallet.user_id == user_id).first()

    except ValidationError:
        raise
    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query wallet: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying wallet: {str(e)}", e) from e


def list_wallets(db: Session, skip: int = 0, limit: int = 100) -> List[Wallet]:
    """All wallets, largest balance first"""
    try:
        _validate_page(skip, limit)

        return (
            db.query(Wallet)
            .order_by(desc(Wallet.balance), Wallet.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    except ValidationError:
        raise
    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query wallets: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying wallets: {str(e)}", e) from e


# ============================================================================
# LEDGER QUERIES
# ============================================================================

def list_transactions(
    db: Session,
    user_id: Optional[int] = None,
    type_: Optional[str] = None,
    status: Optional[str] = None,
    skip: int = 0,
    limit: int = 100
) -> List[Transaction]:
    """Ledger log entries with optional filters, newest first"""
    try:
        _validate_page(skip, limit)

        query = db.query(Transaction)

        if user_id is not None:
            query = query.filter(Transaction.user_id == user_id)
        if type_ is not None:
            query = query.filter(Transaction.type == type_)
        if status is not None:
            query = query.filter(Transaction.status == status)

        return (
            query.order_by(desc(Transaction.created_at), desc(Transaction.id))
            .offset(skip)
            .limit(limit)
            .all()
        )

    except ValidationError:
        raise
    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query transactions: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying transactions: {str(e)}", e) from e


# ============================================================================
# TRADING QUERIES
# ============================================================================

def list_holdings(db: Session, user_id: int) -> List[Holding]:
    """Holdings of a user, most valuable first"""
    try:
        if user_id <= 0:
            raise ValidationError("user_id must be positive", "user_id")

        return (
            db.query(Holding)
            .filter(Holding.user_id == user_id)
            .order_by(desc(Holding.current_value), Holding.id)
            .all()
        )

    except ValidationError:
        raise
    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query holdings: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying holdings: {str(e)}", e) from e


def list_trades(db: Session, user_id: int, limit: int = 50) -> List[Trade]:
    """Trade history of a user, newest first"""
    try:
        if user_id <= 0:
            raise ValidationError("user_id must be positive", "user_id")
        _validate_page(0, limit)

        return (
            db.query(Trade)
            .filter(Trade.user_id == user_id)
            .order_by(desc(Trade.executed_at), desc(Trade.id))
            .limit(limit)
            .all()
        )

    except ValidationError:
        raise
    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query trades: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying trades: {str(e)}", e) from e


# ============================================================================
# FUNDS REQUEST QUERIES
# ============================================================================

def list_deposits(db: Session, status: Optional[str] = None, user_id: Optional[int] = None) -> List[Deposit]:
    """Deposit requests, newest first; status ``all`` (or None) means no status filter"""
    try:
        query = db.query(Deposit)

        if status and status != ALL_STATUSES:
            query = query.filter(Deposit.status == status)
        if user_id is not None:
            query = query.filter(Deposit.user_id == user_id)

        return query.order_by(desc(Deposit.created_at), desc(Deposit.id)).all()

    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query deposits: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying deposits: {str(e)}", e) from e


def list_withdrawals(
    db: Session,
    status: Optional[str] = WithdrawalStatus.PENDING.value,
    user_id: Optional[int] = None
) -> List[Withdrawal]:
    """Withdrawal requests, newest first; pending ones unless another status is asked for"""
    try:
        query = db.query(Withdrawal)

        if status and status != ALL_STATUSES:
            query = query.filter(Withdrawal.status == status)
        if user_id is not None:
            query = query.filter(Withdrawal.user_id == user_id)

        return query.order_by(desc(Withdrawal.created_at), desc(Withdrawal.id)).all()

    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query withdrawals: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying withdrawals: {str(e)}", e) from e


# ============================================================================
# INVESTMENT QUERIES
# ============================================================================

def list_plans(db: Session, include_inactive: bool = False) -> List[InvestmentPlan]:
    """Investment plans ordered by duration"""
    try:
        query = db.query(InvestmentPlan)
        if not include_inactive:
            query = query.filter(InvestmentPlan.is_active.is_(True))

        return query.order_by(InvestmentPlan.duration_days, InvestmentPlan.id).all()

    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query plans: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying plans: {str(e)}", e) from e


def list_user_investments(db: Session, user_id: int) -> List[UserInvestment]:
    """Investments of a user, newest first"""
    try:
        if user_id <= 0:
            raise ValidationError("user_id must be positive", "user_id")

        return (
            db.query(UserInvestment)
            .filter(UserInvestment.user_id == user_id)
            .order_by(desc(UserInvestment.created_at), desc(UserInvestment.id))
            .all()
        )

    except ValidationError:
        raise
    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query investments: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying investments: {str(e)}", e) from e


def list_applications(db: Session, status: Optional[str] = None) -> List[AlgorithmApplication]:
    """Algorithm applications, newest first"""
    try:
        query = db.query(AlgorithmApplication)
        if status and status != ALL_STATUSES:
            query = query.filter(AlgorithmApplication.status == status)

        return query.order_by(desc(AlgorithmApplication.created_at), desc(AlgorithmApplication.id)).all()

    except OperationalError as e:
        raise DatabaseConnectionError("Database connection failed", e) from e
    except SQLAlchemyError as e:
        raise DatabaseQueryError(f"Failed to query applications: {str(e)}", e) from e
    except Exception as e:
        raise DatabaseError(f"Unexpected error querying applications: {str(e)}", e) from e
