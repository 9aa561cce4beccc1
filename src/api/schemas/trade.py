"""
Request/response schemas for trading endpoints
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class TradeRequest(BaseModel):
    """Buy or sell order at a caller-submitted price"""
    asset_type: str = Field(..., description="stock or crypto")
    symbol: str = Field(..., min_length=1, max_length=20)
    asset_name: str = Field(..., min_length=1, max_length=200)
    quantity: Decimal = Field(..., description="Units to trade, up to 8 decimal places")
    price: Decimal = Field(..., description="Execution price per unit")


class TradeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    asset_type: str
    symbol: str
    asset_name: str
    trade_type: str
    quantity: Decimal
    price: Decimal
    total_amount: Decimal
    fee: Decimal
    status: str
    executed_at: datetime


class TradeResult(BaseModel):
    """Executed trade plus the wallet balance it left behind"""
    model_config = ConfigDict(from_attributes=True)

    trade: TradeResponse
    balance: Decimal


class HoldingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    asset_type: str
    symbol: str
    asset_name: str
    quantity: Decimal
    average_price: Decimal
    current_price: Decimal
    total_cost: Decimal
    current_value: Decimal
    profit_loss: Decimal
    profit_loss_pct: Decimal
    updated_at: datetime


class PriceQuote(BaseModel):
    symbol: str
    asset_type: str
    price: Decimal


class PriceBoard(BaseModel):
    prices: List[PriceQuote]
    asset_type: Optional[str] = None
