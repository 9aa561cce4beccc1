"""
Wallet lifecycle and admin balance corrections
"""
from typing import Optional
from sqlalchemy.orm import Session
from src.config.settings import settings
from src.database.connection import atomic
from src.database.models import Wallet, TransactionType
from src.services.ledger import to_money, to_decimal, adjust_balance, record_transaction
from src.observability.logging import get_logger
from src.observability.tracing import track_operation
from src.utils.exceptions import InvalidInputError, NotFoundError, ValidationError

logger = get_logger(__name__)


@track_operation("open_wallet")
def open_wallet(db: Session, user_id: int, currency: Optional[str] = None) -> Wallet:
    """Create the single wallet a user owns, with a zero balance"""
    if user_id is None or user_id <= 0:
        raise ValidationError("user_id must be positive", "user_id")

    with atomic(db):
        existing = db.query(Wallet).filter(Wallet.user_id == user_id).first()
        if existing is not None:
            raise ValidationError(f"User {user_id} already has a wallet", "user_id")

        wallet = Wallet(
            user_id=user_id,
            balance=to_money(0),
            currency=currency or settings.DEFAULT_CURRENCY
        )
        db.add(wallet)
        db.flush()

    logger.info("Wallet opened", extra={"user_id": user_id, "wallet_id": wallet.id})
    return wallet


@track_operation("adjust_wallet_balance")
def adjust_wallet_balance(db: Session, wallet_id: int, new_balance) -> Wallet:
    """
    Set a wallet to ``new_balance`` and log the difference.

    Increases are logged as deposits and decreases as withdrawals, both with
    a positive amount. Setting the current balance again logs nothing.
    """
    target = to_money(to_decimal(new_balance, "balance"))
    if target < 0:
        raise InvalidInputError("balance", new_balance, "Must not be negative")

    with atomic(db):
        wallet = (
            db.query(Wallet)
            .filter(Wallet.id == wallet_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if wallet is None:
            raise NotFoundError("Wallet", wallet_id)

        old_balance = wallet.balance
        difference = target - old_balance
        if difference != 0:
            adjust_balance(db, wallet, difference)
            record_transaction(
                db,
                user_id=wallet.user_id,
                type_=(TransactionType.DEPOSIT if difference > 0 else TransactionType.WITHDRAWAL).value,
                amount=difference,
                description="Admin wallet adjustment",
                reference_id=wallet.id
            )

    logger.info(
        "Wallet adjusted",
        extra={"wallet_id": wallet_id, "old_balance": old_balance, "new_balance": target}
    )
    return wallet
