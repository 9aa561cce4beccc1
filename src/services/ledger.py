"""
Shared ledger primitives used by the settlement, funds review and investment engines.

All helpers expect to run inside ``atomic(db)``; none of them commit.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Dict, Optional, Type, Union
from sqlalchemy.orm import Session
from src.database.models import Wallet, Transaction, TransactionStatus
from src.utils.exceptions import NotFoundError, InvalidInputError

CENT = Decimal("0.01")
QUANTUM = Decimal("0.00000001")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number, field: str = "amount") -> Decimal:
    """Convert user input to Decimal without going through binary floats"""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidInputError(field, value, "Must be a number")
    if not result.is_finite():
        raise InvalidInputError(field, value, "Must be a finite number")
    return result


def to_money(value: Number) -> Decimal:
    """Round to 2 decimal places, the precision every stored amount uses"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_quantity(value: Number) -> Decimal:
    """Round to 8 decimal places, the precision stored asset quantities use"""
    return to_decimal(value, "quantity").quantize(QUANTUM, rounding=ROUND_HALF_UP)


def require_positive(value: Number, field: str) -> Decimal:
    number = to_decimal(value, field)
    if number <= 0:
        raise InvalidInputError(field, value, "Must be greater than 0")
    return number


def lock_wallet(db: Session, user_id: int) -> Wallet:
    """Load a user's wallet with a row lock held until the transaction ends"""
    wallet = (
        db.query(Wallet)
        .filter(Wallet.user_id == user_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if wallet is None:
        raise NotFoundError("Wallet for user", user_id)
    return wallet


def adjust_balance(db: Session, wallet: Wallet, delta: Decimal) -> Wallet:
    """
    Increment (positive delta) or decrement (negative delta) a wallet balance.

    The change is applied as ``balance = balance + delta`` in SQL so it
    composes with concurrent increments instead of overwriting them.
    """
    db.query(Wallet).filter(Wallet.id == wallet.id).update(
        {Wallet.balance: Wallet.balance + to_money(delta)},
        synchronize_session=False
    )
    db.flush()
    db.refresh(wallet)
    return wallet


def record_transaction(
    db: Session,
    user_id: int,
    type_: str,
    amount: Decimal,
    description: str,
    reference_id: Optional[Any] = None,
    status: str = TransactionStatus.COMPLETED.value
) -> Transaction:
    """Append one row to the ledger log"""
    entry = Transaction(
        user_id=user_id,
        type=type_,
        amount=to_money(abs(amount)),
        description=description,
        status=status,
        reference_id=str(reference_id) if reference_id is not None else None
    )
    db.add(entry)
    db.flush()
    return entry


def guarded_transition(
    db: Session,
    model: Type,
    record_id: int,
    expected_status: str,
    values: Dict[Any, Any]
) -> bool:
    """
    Apply ``values`` to a row only if its status still equals ``expected_status``.

    Returns True when exactly one row matched. A False result means another
    transaction moved the row first and the caller must abort.
    """
    matched = (
        db.query(model)
        .filter(model.id == record_id, model.status == expected_status)
        .update(values, synchronize_session=False)
    )
    return matched == 1
