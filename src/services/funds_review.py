"""
Deposit and withdrawal requests, and their admin review

Approving a deposit credits the wallet exactly once and rejecting a
withdrawal refunds it exactly once: every status change is a guarded
update from a specific prior status, so a retried or concurrent review
fails instead of applying twice.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy.orm import Session
from src.database.connection import atomic
from src.database.models import (
    Deposit, DepositStatus, Withdrawal, WithdrawalStatus,
    TransactionStatus, TransactionType
)
from src.services.ledger import (
    to_money, require_positive, lock_wallet, adjust_balance,
    record_transaction, guarded_transition
)
from src.observability.logging import get_logger
from src.observability.tracing import track_operation
from src.utils.exceptions import (
    AlreadyReviewedError,
    InsufficientFundsError,
    InvalidInputError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)

CRYPTO_METHOD = "crypto"

DEPOSIT_REVIEW_STATUSES = {
    DepositStatus.APPROVED.value,
    DepositStatus.REJECTED.value,
    DepositStatus.AWAITING_PAYMENT.value,
    DepositStatus.PENDING_MATCHING.value,
    DepositStatus.AWAITING_CONFIRMATION.value,
}

# Statuses in which the admin is still arranging payment; leaving them stamps reviewed_at
SETTLEMENT_STATUSES = {
    DepositStatus.AWAITING_PAYMENT.value,
    DepositStatus.PENDING_MATCHING.value,
}

PROOF_ACCEPTED_FROM = {
    DepositStatus.PENDING.value,
    DepositStatus.AWAITING_PAYMENT.value,
    DepositStatus.PENDING_MATCHING.value,
}

WITHDRAWAL_REVIEW_STATUSES = {
    WithdrawalStatus.APPROVED.value,
    WithdrawalStatus.REJECTED.value,
}


def _lock_deposit(db: Session, deposit_id: int) -> Deposit:
    deposit = (
        db.query(Deposit)
        .filter(Deposit.id == deposit_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if deposit is None:
        raise NotFoundError("Deposit", deposit_id)
    return deposit


def _lock_withdrawal(db: Session, withdrawal_id: int) -> Withdrawal:
    withdrawal = (
        db.query(Withdrawal)
        .filter(Withdrawal.id == withdrawal_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if withdrawal is None:
        raise NotFoundError("Withdrawal", withdrawal_id)
    return withdrawal


# ============================================================================
# DEPOSITS
# ============================================================================

@track_operation("create_deposit")
def create_deposit(
    db: Session,
    user_id: int,
    amount,
    payment_method: str,
    crypto_type: Optional[str] = None,
    transaction_hash: Optional[str] = None,
    proof_notes: Optional[str] = None
) -> Deposit:
    """Open a deposit request; nothing is credited until an admin approves it"""
    value = to_money(require_positive(amount, "amount"))
    if not payment_method or not payment_method.strip():
        raise ValidationError("payment_method is required", "payment_method")

    with atomic(db):
        deposit = Deposit(
            user_id=user_id,
            amount=value,
            payment_method=payment_method.strip(),
            crypto_type=crypto_type,
            transaction_hash=transaction_hash,
            proof_notes=proof_notes,
            status=DepositStatus.PENDING.value
        )
        db.add(deposit)
        db.flush()

    logger.info("Deposit requested", extra={"user_id": user_id, "deposit_id": deposit.id, "amount": value})
    return deposit


@track_operation("submit_deposit_proof")
def submit_deposit_proof(
    db: Session,
    deposit_id: int,
    user_id: int,
    transaction_hash: Optional[str] = None,
    proof_notes: Optional[str] = None
) -> Deposit:
    """Mark a deposit as paid by the user so it can be confirmed by an admin"""
    with atomic(db):
        deposit = _lock_deposit(db, deposit_id)
        if deposit.user_id != user_id:
            raise NotFoundError("Deposit", deposit_id)
        if deposit.status not in PROOF_ACCEPTED_FROM:
            raise InvalidStateTransitionError(
                "Proof of payment can only be submitted for deposits awaiting payment",
                current_status=deposit.status,
                requested_status=DepositStatus.AWAITING_CONFIRMATION.value
            )

        tx_hash = transaction_hash or deposit.transaction_hash
        if deposit.payment_method == CRYPTO_METHOD and not tx_hash:
            raise ValidationError("Transaction hash is required for crypto deposits", "transaction_hash")

        values: Dict[Any, Any] = {
            Deposit.status: DepositStatus.AWAITING_CONFIRMATION.value,
            Deposit.transaction_hash: tx_hash,
            Deposit.updated_at: datetime.utcnow(),
        }
        if proof_notes:
            values[Deposit.proof_notes] = proof_notes

        if not guarded_transition(db, Deposit, deposit.id, deposit.status, values):
            raise InvalidStateTransitionError("Deposit was modified concurrently", current_status=deposit.status)
        db.refresh(deposit)

    return deposit


@track_operation("review_deposit")
def review_deposit(
    db: Session,
    deposit_id: int,
    status: str,
    reviewer_id: Optional[int] = None,
    admin_notes: Optional[str] = None,
    settlement_details: Optional[Dict[str, Any]] = None,
    amount=None
) -> Deposit:
    """
    Move a deposit to ``status`` on behalf of an admin.

    Approval is only allowed from awaiting_confirmation (crypto deposits also
    need a transaction hash) and credits the wallet with the possibly
    corrected amount. An approved deposit cannot be changed again.

    Raises:
        ValidationError: unknown status, bad amount or missing crypto hash
        NotFoundError: no such deposit or wallet
        InvalidStateTransitionError: transition not allowed from the current status
    """
    if status not in DEPOSIT_REVIEW_STATUSES:
        raise InvalidInputError("status", status, f"Must be one of {sorted(DEPOSIT_REVIEW_STATUSES)}")
    corrected_amount = to_money(require_positive(amount, "amount")) if amount is not None else None

    with atomic(db):
        deposit = _lock_deposit(db, deposit_id)
        prior_status = deposit.status

        if prior_status == DepositStatus.APPROVED.value:
            message = (
                "Cannot reject an already approved deposit"
                if status == DepositStatus.REJECTED.value
                else "Deposit is already approved"
            )
            raise InvalidStateTransitionError(message, current_status=prior_status, requested_status=status)

        if status == DepositStatus.APPROVED.value:
            if prior_status != DepositStatus.AWAITING_CONFIRMATION.value:
                raise InvalidStateTransitionError(
                    "Can only approve deposits that have been submitted with proof of payment "
                    "and are awaiting confirmation",
                    current_status=prior_status,
                    requested_status=status
                )
            if deposit.payment_method == CRYPTO_METHOD and not deposit.transaction_hash:
                raise ValidationError(
                    "Transaction hash is required for crypto deposit approval",
                    "transaction_hash"
                )

        now = datetime.utcnow()
        values: Dict[Any, Any] = {Deposit.status: status, Deposit.updated_at: now}
        if admin_notes:
            values[Deposit.admin_notes] = admin_notes
        if settlement_details and status in SETTLEMENT_STATUSES:
            values[Deposit.settlement_details] = settlement_details
        if corrected_amount is not None:
            values[Deposit.amount] = corrected_amount
        if status not in SETTLEMENT_STATUSES:
            values[Deposit.reviewed_at] = now
            values[Deposit.reviewed_by] = reviewer_id

        if not guarded_transition(db, Deposit, deposit.id, prior_status, values):
            raise InvalidStateTransitionError(
                "Deposit was reviewed concurrently",
                current_status=prior_status,
                requested_status=status
            )
        db.refresh(deposit)

        if status == DepositStatus.APPROVED.value:
            wallet = lock_wallet(db, deposit.user_id)
            adjust_balance(db, wallet, deposit.amount)
            record_transaction(
                db,
                user_id=deposit.user_id,
                type_=TransactionType.DEPOSIT.value,
                amount=deposit.amount,
                description=f"Deposit approved: {deposit.payment_method}",
                reference_id=deposit.id
            )

    logger.info(
        "Deposit reviewed",
        extra={
            "deposit_id": deposit_id,
            "from_status": prior_status,
            "to_status": status,
            "reviewer_id": reviewer_id,
        }
    )
    return deposit


# ============================================================================
# WITHDRAWALS
# ============================================================================

@track_operation("create_withdrawal")
def create_withdrawal(
    db: Session,
    user_id: int,
    amount,
    withdrawal_method: str,
    wallet_address: Optional[str] = None,
    bank_details: Optional[str] = None
) -> Withdrawal:
    """
    Request a withdrawal. The amount is held (debited) immediately and
    logged as a pending withdrawal; rejection refunds it.
    """
    value = to_money(require_positive(amount, "amount"))
    if not withdrawal_method or not withdrawal_method.strip():
        raise ValidationError("withdrawal_method is required", "withdrawal_method")

    with atomic(db):
        wallet = lock_wallet(db, user_id)
        if wallet.balance < value:
            raise InsufficientFundsError(required=value, available=wallet.balance)

        withdrawal = Withdrawal(
            user_id=user_id,
            amount=value,
            withdrawal_method=withdrawal_method.strip(),
            wallet_address=wallet_address,
            bank_details=bank_details,
            status=WithdrawalStatus.PENDING.value
        )
        db.add(withdrawal)
        db.flush()

        adjust_balance(db, wallet, -value)
        record_transaction(
            db,
            user_id=user_id,
            type_=TransactionType.WITHDRAWAL.value,
            amount=value,
            description=f"Withdrawal requested to {withdrawal.withdrawal_method} (funds held)",
            reference_id=withdrawal.id,
            status=TransactionStatus.PENDING.value
        )

    logger.info("Withdrawal requested", extra={"user_id": user_id, "withdrawal_id": withdrawal.id, "amount": value})
    return withdrawal


@track_operation("review_withdrawal")
def review_withdrawal(
    db: Session,
    withdrawal_id: int,
    status: str,
    reviewer_id: Optional[int] = None,
    admin_notes: Optional[str] = None
) -> Withdrawal:
    """
    Approve or reject a pending withdrawal.

    Rejection refunds the held amount to the wallet; approval records the
    completed withdrawal without touching the balance.

    Raises:
        ValidationError: status other than approved/rejected
        NotFoundError: no such withdrawal or wallet
        AlreadyReviewedError: the withdrawal is no longer pending
    """
    if status not in WITHDRAWAL_REVIEW_STATUSES:
        raise InvalidInputError("status", status, "Must be 'approved' or 'rejected'")

    with atomic(db):
        withdrawal = _lock_withdrawal(db, withdrawal_id)
        if withdrawal.status != WithdrawalStatus.PENDING.value:
            raise AlreadyReviewedError("Withdrawal", withdrawal.status)

        values = {
            Withdrawal.status: status,
            Withdrawal.admin_notes: admin_notes,
            Withdrawal.reviewed_at: datetime.utcnow(),
            Withdrawal.reviewed_by: reviewer_id,
        }
        if not guarded_transition(db, Withdrawal, withdrawal.id, WithdrawalStatus.PENDING.value, values):
            raise AlreadyReviewedError("Withdrawal")
        db.refresh(withdrawal)

        if status == WithdrawalStatus.REJECTED.value:
            wallet = lock_wallet(db, withdrawal.user_id)
            adjust_balance(db, wallet, withdrawal.amount)
            record_transaction(
                db,
                user_id=withdrawal.user_id,
                type_=TransactionType.DEPOSIT.value,
                amount=withdrawal.amount,
                description="Refund for rejected withdrawal",
                reference_id=withdrawal.id
            )
        else:
            record_transaction(
                db,
                user_id=withdrawal.user_id,
                type_=TransactionType.WITHDRAWAL.value,
                amount=withdrawal.amount,
                description=f"Withdrawal approved to {withdrawal.withdrawal_method}",
                reference_id=withdrawal.id
            )

    logger.info(
        "Withdrawal reviewed",
        extra={"withdrawal_id": withdrawal_id, "to_status": status, "reviewer_id": reviewer_id}
    )
    return withdrawal
