"""
Trading endpoints - price board, buy/sell and portfolio views
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional
from src.api.dependencies import get_db, get_simulator, get_valuation_source, require_permission
from src.api.schemas.trade import HoldingResponse, PriceBoard, TradeRequest, TradeResponse, TradeResult
from src.auth.permissions import Permission
from src.database import queries
from src.services.price_source import PriceSimulator, PriceSource
from src.services.trade_settlement import execute_buy, execute_sell, refresh_holding_prices
from src.utils.exceptions import InvalidInputError

router = APIRouter(prefix="/trade")

ASSET_TYPES = {"stock", "crypto"}


def _balance_after(db: Session, user_id: int):
    wallet = queries.get_wallet(db, user_id)
    return wallet.balance if wallet is not None else None


@router.get("/prices", response_model=PriceBoard)
def get_prices(
    asset_type: Optional[str] = Query(None, description="stock or crypto; omit for all"),
    simulator: PriceSimulator = Depends(get_simulator)
):
    """Current simulated prices; public"""
    if asset_type is not None and asset_type not in ASSET_TYPES:
        raise InvalidInputError("asset_type", asset_type, "Must be 'stock' or 'crypto'")
    return {"prices": simulator.get_all_prices(asset_type), "asset_type": asset_type}


@router.post("/buy", response_model=TradeResult)
def buy(
    order: TradeRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.TRADE))
):
    """Buy at the submitted price; debits cost plus 0.1% fee"""
    user_id = current_user["user_id"]
    trade = execute_buy(
        db, user_id, order.asset_type, order.symbol, order.asset_name, order.quantity, order.price
    )
    return {"trade": trade, "balance": _balance_after(db, user_id)}


@router.post("/sell", response_model=TradeResult)
def sell(
    order: TradeRequest,
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.TRADE))
):
    """Sell at the submitted price; credits proceeds less 0.1% fee"""
    user_id = current_user["user_id"]
    trade = execute_sell(
        db, user_id, order.asset_type, order.symbol, order.asset_name, order.quantity, order.price
    )
    return {"trade": trade, "balance": _balance_after(db, user_id)}


@router.get("/holdings", response_model=List[HoldingResponse])
def get_holdings(
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_OWN_WALLET))
):
    return queries.list_holdings(db, current_user["user_id"])


@router.post("/holdings/prices", response_model=List[HoldingResponse])
def update_holding_prices(
    db: Session = Depends(get_db),
    price_source: PriceSource = Depends(get_valuation_source),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_OWN_WALLET))
):
    """Revalue the caller's holdings at current prices"""
    refresh_holding_prices(db, current_user["user_id"], price_source)
    return queries.list_holdings(db, current_user["user_id"])


@router.get("/history", response_model=List[TradeResponse])
def get_trade_history(
    limit: int = Query(50, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: Dict[str, Any] = Depends(require_permission(Permission.READ_OWN_WALLET))
):
    return queries.list_trades(db, current_user["user_id"], limit=limit)
