"""
Trade settlement - applies buys and sells to wallet, holding, trade and ledger log

Each trade runs as one transaction: the wallet and holding rows are locked
and validated inside the same transaction that writes the debit/credit, the
holding change, the Trade row and the Transaction row.

Costing policy is weighted-average: a buy blends its cost into the holding's
average price, a sell leaves the average price unchanged.
"""
from decimal import Decimal
from typing import List, Optional, Tuple
from datetime import datetime
from sqlalchemy.orm import Session
from src.database.connection import atomic
from src.database.models import (
    AssetType, Holding, Trade, TradeType, TransactionType
)
from src.services.ledger import (
    to_decimal, to_money, to_quantity, require_positive, lock_wallet, adjust_balance, record_transaction
)
from src.services.price_source import UNKNOWN_PRICE, PriceSource
from src.observability.logging import get_logger
from src.observability.tracing import track_operation
from src.utils.exceptions import (
    InsufficientFundsError,
    InsufficientHoldingsError,
    InvalidInputError,
    NoSuchHoldingError,
    ValidationError,
)

logger = get_logger(__name__)

TRADING_FEE_RATE = Decimal("0.001")  # 0.1% of the traded amount
DUST_QUANTITY = Decimal("0.00000001")  # positions at or below this are closed
TRADE_EXECUTED = "executed"


def _validate_order(
    asset_type: str,
    symbol: str,
    asset_name: str,
    quantity,
    price
) -> Tuple[Decimal, Decimal]:
    if not asset_type or not symbol or not asset_name:
        raise ValidationError("Missing required fields", "asset")
    if asset_type not in {t.value for t in AssetType}:
        raise InvalidInputError("asset_type", asset_type, "Must be 'stock' or 'crypto'")

    require_positive(quantity, "quantity")
    require_positive(price, "price")

    qty = to_quantity(quantity)
    if qty <= 0:
        raise InvalidInputError("quantity", quantity, "Must be at least 0.00000001")
    return qty, to_decimal(price, "price")


def _lock_holding(db: Session, user_id: int, asset_type: str, symbol: str) -> Optional[Holding]:
    return (
        db.query(Holding)
        .filter(
            Holding.user_id == user_id,
            Holding.asset_type == asset_type,
            Holding.symbol == symbol
        )
        .with_for_update()
        .populate_existing()
        .first()
    )


def _valuation(quantity: Decimal, price: Decimal, total_cost: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """current value, profit/loss and profit/loss percent for a position"""
    current_value = quantity * price
    profit_loss = current_value - total_cost
    profit_loss_pct = (profit_loss / total_cost) * 100 if total_cost > 0 else Decimal("0")
    return to_money(current_value), to_money(profit_loss), to_money(profit_loss_pct)


@track_operation("trade_buy")
def execute_buy(
    db: Session,
    user_id: int,
    asset_type: str,
    symbol: str,
    asset_name: str,
    quantity,
    price
) -> Trade:
    """
    Buy ``quantity`` units at ``price``.

    Debits quantity x price plus a 0.1% fee, records the trade, creates or
    re-averages the holding and logs a trade_buy transaction.

    Raises:
        ValidationError: malformed order
        NotFoundError: the user has no wallet
        InsufficientFundsError: balance below the total cost
    """
    qty, price_value = _validate_order(asset_type, symbol, asset_name, quantity, price)

    total_amount = qty * price_value
    fee = total_amount * TRADING_FEE_RATE
    total_cost = to_money(total_amount + fee)

    with atomic(db):
        wallet = lock_wallet(db, user_id)
        if wallet.balance < total_cost:
            raise InsufficientFundsError(required=total_cost, available=wallet.balance)

        adjust_balance(db, wallet, -total_cost)

        trade = Trade(
            user_id=user_id,
            asset_type=asset_type,
            symbol=symbol,
            asset_name=asset_name,
            trade_type=TradeType.BUY.value,
            quantity=qty,
            price=to_money(price_value),
            total_amount=to_money(total_amount),
            fee=to_money(fee),
            status=TRADE_EXECUTED
        )
        db.add(trade)
        db.flush()

        holding = _lock_holding(db, user_id, asset_type, symbol)
        if holding is not None:
            new_qty = holding.quantity + qty
            new_cost = holding.quantity * holding.average_price + total_amount
            current_value, profit_loss, profit_loss_pct = _valuation(new_qty, price_value, new_cost)

            holding.quantity = to_quantity(new_qty)
            holding.average_price = to_money(new_cost / new_qty)
            holding.current_price = to_money(price_value)
            holding.total_cost = to_money(new_cost)
            holding.current_value = current_value
            holding.profit_loss = profit_loss
            holding.profit_loss_pct = profit_loss_pct
            holding.updated_at = datetime.utcnow()
        else:
            db.add(Holding(
                user_id=user_id,
                asset_type=asset_type,
                symbol=symbol,
                asset_name=asset_name,
                quantity=qty,
                average_price=to_money(price_value),
                current_price=to_money(price_value),
                total_cost=to_money(total_amount),
                current_value=to_money(total_amount),
                profit_loss=Decimal("0.00"),
                profit_loss_pct=Decimal("0.00"),
                updated_at=datetime.utcnow()
            ))

        record_transaction(
            db,
            user_id=user_id,
            type_=TransactionType.TRADE_BUY.value,
            amount=total_cost,
            description=f"Bought {qty:.8f} {symbol} at ${price_value:.2f}",
            reference_id=trade.id
        )

    logger.info(
        "Buy executed",
        extra={"user_id": user_id, "symbol": symbol, "quantity": qty, "total_cost": total_cost}
    )
    return trade


@track_operation("trade_sell")
def execute_sell(
    db: Session,
    user_id: int,
    asset_type: str,
    symbol: str,
    asset_name: str,
    quantity,
    price
) -> Trade:
    """
    Sell ``quantity`` units at ``price``.

    Credits quantity x price less the 0.1% fee, records the trade and
    shrinks the holding, deleting it when nothing above dust remains.

    Raises:
        ValidationError: malformed order
        NoSuchHoldingError: the user holds none of the asset
        InsufficientHoldingsError: held quantity below the sell quantity
        NotFoundError: the user has no wallet
    """
    qty, price_value = _validate_order(asset_type, symbol, asset_name, quantity, price)

    total_amount = qty * price_value
    fee = total_amount * TRADING_FEE_RATE
    net_proceeds = to_money(total_amount - fee)

    with atomic(db):
        # Wallet before holding, the same lock order as execute_buy
        wallet = lock_wallet(db, user_id)
        holding = _lock_holding(db, user_id, asset_type, symbol)
        if holding is None:
            raise NoSuchHoldingError(symbol)
        if holding.quantity < qty:
            raise InsufficientHoldingsError(requested=qty, available=holding.quantity)

        adjust_balance(db, wallet, net_proceeds)

        trade = Trade(
            user_id=user_id,
            asset_type=asset_type,
            symbol=symbol,
            asset_name=asset_name,
            trade_type=TradeType.SELL.value,
            quantity=qty,
            price=to_money(price_value),
            total_amount=to_money(total_amount),
            fee=to_money(fee),
            status=TRADE_EXECUTED
        )
        db.add(trade)
        db.flush()

        remaining = holding.quantity - qty
        if remaining <= DUST_QUANTITY:
            db.delete(holding)
        else:
            total_cost = holding.average_price * remaining
            current_value, profit_loss, profit_loss_pct = _valuation(remaining, price_value, total_cost)

            holding.quantity = to_quantity(remaining)
            holding.current_price = to_money(price_value)
            holding.total_cost = to_money(total_cost)
            holding.current_value = current_value
            holding.profit_loss = profit_loss
            holding.profit_loss_pct = profit_loss_pct
            holding.updated_at = datetime.utcnow()

        record_transaction(
            db,
            user_id=user_id,
            type_=TransactionType.TRADE_SELL.value,
            amount=net_proceeds,
            description=f"Sold {qty:.8f} {symbol} at ${price_value:.2f}",
            reference_id=trade.id
        )

    logger.info(
        "Sell executed",
        extra={"user_id": user_id, "symbol": symbol, "quantity": qty, "net_proceeds": net_proceeds}
    )
    return trade


@track_operation("refresh_holding_prices")
def refresh_holding_prices(db: Session, user_id: int, price_source: PriceSource) -> List[Holding]:
    """
    Revalue every holding of a user at the price source's current prices.

    Prices are looked up with no transaction open, so a slow price source
    never holds holding row locks that trade settlement waits on.
    """
    with atomic(db):
        assets = (
            db.query(Holding.asset_type, Holding.symbol)
            .filter(Holding.user_id == user_id)
            .distinct()
            .all()
        )

    prices = {
        (asset_type, symbol): price_source.get_price(asset_type, symbol)
        for asset_type, symbol in assets
    }

    with atomic(db):
        holdings = (
            db.query(Holding)
            .filter(Holding.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        for holding in holdings:
            current_price = prices.get((holding.asset_type, holding.symbol), UNKNOWN_PRICE)
            if current_price <= 0:
                continue  # untracked asset, or bought after the lookup, keeps its last valuation

            current_value, profit_loss, profit_loss_pct = _valuation(
                holding.quantity, current_price, holding.total_cost
            )
            holding.current_price = to_money(current_price)
            holding.current_value = current_value
            holding.profit_loss = profit_loss
            holding.profit_loss_pct = profit_loss_pct
            holding.updated_at = datetime.utcnow()

    return holdings
