"""
Investment plans - catalog management, subscriptions and the maturity sweep
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from src.database.connection import atomic
from src.database.models import (
    InvestmentPlan, InvestmentStatus, TransactionType, UserAlgorithmAccess, UserInvestment
)
from src.services.ledger import (
    to_decimal, to_money, require_positive, lock_wallet, adjust_balance,
    record_transaction, guarded_transition
)
from src.observability.logging import get_logger
from src.observability.metrics import get_metrics_collector
from src.observability.tracing import track_operation
from src.utils.exceptions import (
    AmountOutOfRangeError,
    BrokerageServerError,
    InsufficientFundsError,
    InvalidInputError,
    InvalidStateTransitionError,
    NotFoundError,
    PlanNotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


def _validate_plan_terms(min_amount: Decimal, max_amount: Decimal, return_percentage: Decimal, duration_days: int):
    if min_amount <= 0:
        raise InvalidInputError("min_amount", min_amount, "Must be greater than 0")
    if min_amount > max_amount:
        raise ValidationError("min_amount cannot be greater than max_amount", "amount_range")
    if return_percentage < 0:
        raise InvalidInputError("return_percentage", return_percentage, "Must not be negative")
    if duration_days is None or int(duration_days) <= 0:
        raise InvalidInputError("duration_days", duration_days, "Must be a positive number of days")


def _require_duration(days) -> int:
    if days is None or isinstance(days, bool) or int(days) != days or int(days) <= 0:
        raise InvalidInputError("custom_duration_days", days, "Must be a positive number of days")
    return int(days)


@track_operation("create_plan")
def create_plan(
    db: Session,
    name: str,
    min_amount,
    max_amount,
    return_percentage,
    duration_days: int,
    description: Optional[str] = None,
    is_active: bool = True
) -> InvestmentPlan:
    """Add a plan to the catalog"""
    if not name or not name.strip():
        raise ValidationError("name is required", "name")
    min_value = to_money(to_decimal(min_amount, "min_amount"))
    max_value = to_money(to_decimal(max_amount, "max_amount"))
    return_value = to_money(to_decimal(return_percentage, "return_percentage"))
    _validate_plan_terms(min_value, max_value, return_value, duration_days)

    with atomic(db):
        plan = InvestmentPlan(
            name=name.strip(),
            description=description,
            min_amount=min_value,
            max_amount=max_value,
            return_percentage=return_value,
            duration_days=int(duration_days),
            is_active=is_active
        )
        db.add(plan)
        db.flush()

    return plan


@track_operation("update_plan")
def update_plan(db: Session, plan_id: int, **changes) -> InvestmentPlan:
    """
    Change catalog fields of a plan. Existing subscriptions keep their own
    end dates and expected returns.
    """
    allowed = {"name", "description", "min_amount", "max_amount", "return_percentage", "duration_days", "is_active"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationError(f"Unknown plan fields: {sorted(unknown)}", "plan")

    with atomic(db):
        plan = db.query(InvestmentPlan).filter(InvestmentPlan.id == plan_id).with_for_update().first()
        if plan is None:
            raise PlanNotFoundError(plan_id)

        for field_name in ("min_amount", "max_amount", "return_percentage"):
            if changes.get(field_name) is not None:
                changes[field_name] = to_money(to_decimal(changes[field_name], field_name))
        for field_name, value in changes.items():
            if value is not None:
                setattr(plan, field_name, value)

        _validate_plan_terms(plan.min_amount, plan.max_amount, plan.return_percentage, plan.duration_days)

    return plan


def effective_duration_days(db: Session, user_id: int, plan: InvestmentPlan) -> Tuple[int, Optional[int]]:
    """Plan duration for this user, and the per-user override it came from (if any)"""
    access = (
        db.query(UserAlgorithmAccess)
        .filter(UserAlgorithmAccess.user_id == user_id, UserAlgorithmAccess.plan_id == plan.id)
        .first()
    )
    custom_days = access.custom_duration_days if access is not None else None
    return (custom_days if custom_days is not None else plan.duration_days), custom_days


@track_operation("subscribe")
def subscribe(
    db: Session,
    user_id: int,
    plan_id: int,
    amount,
    now: Optional[datetime] = None
) -> UserInvestment:
    """
    Invest ``amount`` in a plan.

    Debits the wallet and creates an ACTIVE investment maturing after the
    effective duration (a per-user override if one was granted, otherwise
    the plan's duration).

    Raises:
        PlanNotFoundError, AmountOutOfRangeError, InsufficientFundsError,
        NotFoundError (no wallet), ValidationError (bad amount)
    """
    value = to_money(require_positive(amount, "amount"))

    with atomic(db):
        plan = db.query(InvestmentPlan).filter(InvestmentPlan.id == plan_id).first()
        if plan is None:
            raise PlanNotFoundError(plan_id)
        if value < plan.min_amount or value > plan.max_amount:
            raise AmountOutOfRangeError(value, plan.min_amount, plan.max_amount)

        wallet = lock_wallet(db, user_id)
        if wallet.balance < value:
            raise InsufficientFundsError(required=value, available=wallet.balance)

        duration_days, custom_days = effective_duration_days(db, user_id, plan)
        start_date = now or datetime.utcnow()

        investment = UserInvestment(
            user_id=user_id,
            plan_id=plan.id,
            amount=value,
            start_date=start_date,
            end_date=start_date + timedelta(days=duration_days),
            status=InvestmentStatus.ACTIVE.value,
            expected_return=to_money(value * plan.return_percentage / 100),
            custom_duration_days=custom_days
        )
        db.add(investment)
        db.flush()

        adjust_balance(db, wallet, -value)
        record_transaction(
            db,
            user_id=user_id,
            type_=TransactionType.TRADE_BUY.value,
            amount=value,
            description=f"Investment in {plan.name}",
            reference_id=investment.id
        )

    logger.info(
        "Investment created",
        extra={
            "user_id": user_id,
            "plan_id": plan_id,
            "investment_id": investment.id,
            "amount": value,
            "duration_days": duration_days,
        }
    )
    return investment


def _mature_one(db: Session, investment: UserInvestment, as_of: datetime) -> bool:
    """Complete one investment and pay it out; False if another sweep already did"""
    with atomic(db):
        completed = guarded_transition(
            db,
            UserInvestment,
            investment.id,
            InvestmentStatus.ACTIVE.value,
            {UserInvestment.status: InvestmentStatus.COMPLETED.value, UserInvestment.completed_at: as_of}
        )
        if not completed:
            return False

        db.refresh(investment)
        payout = investment.amount + investment.expected_return
        wallet = lock_wallet(db, investment.user_id)
        adjust_balance(db, wallet, payout)
        record_transaction(
            db,
            user_id=investment.user_id,
            type_=TransactionType.TRADE_SELL.value,
            amount=payout,
            description=f"Investment payout: {investment.plan.name}",
            reference_id=investment.id
        )
    return True


@track_operation("mature_investments")
def mature_investments(db: Session, as_of: Optional[datetime] = None) -> List[UserInvestment]:
    """
    Pay out every ACTIVE investment whose end date has passed.

    Each investment is completed in its own transaction, guarded on the
    ACTIVE status, so re-running the sweep (or running two at once) pays
    each investment exactly once. An investment that cannot be paid is
    logged and left ACTIVE for the next run.
    """
    as_of = as_of or datetime.utcnow()
    due = (
        db.query(UserInvestment)
        .filter(
            UserInvestment.status == InvestmentStatus.ACTIVE.value,
            UserInvestment.end_date <= as_of
        )
        .order_by(UserInvestment.end_date)
        .all()
    )

    matured = []
    for investment in due:
        try:
            if _mature_one(db, investment, as_of):
                matured.append(investment)
        except BrokerageServerError as e:
            get_metrics_collector().record_error(
                e.error_code or type(e).__name__,
                e.message,
                context={"investment_id": investment.id, "operation": "mature_investments"}
            )

    logger.info("Maturity sweep finished", extra={"due": len(due), "matured": len(matured)})
    return matured


@track_operation("override_investment_duration")
def override_investment_duration(db: Session, investment_id: int, custom_duration_days: int) -> UserInvestment:
    """Give an active investment a custom duration; the end date moves with it"""
    days = _require_duration(custom_duration_days)

    with atomic(db):
        investment = (
            db.query(UserInvestment)
            .filter(UserInvestment.id == investment_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if investment is None:
            raise NotFoundError("Investment", investment_id)
        if investment.status != InvestmentStatus.ACTIVE.value:
            raise InvalidStateTransitionError(
                "Only active investments can have their duration changed",
                current_status=investment.status
            )

        investment.custom_duration_days = days
        investment.end_date = investment.start_date + timedelta(days=days)

    return investment
