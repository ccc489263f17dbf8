"""
Request schemas for the portfolio API.

Each model validates one JSON body; `model_dump(exclude_unset=True)` on the
update models gives just the fields the client sent.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class StockCreate(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=10)

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()


class TransactionCreate(BaseModel):
    stock_id: int
    type: Literal["buy", "sell"]
    shares: float = Field(..., gt=0)
    price: float = Field(..., ge=0)
    fees: float = Field(0, ge=0)
    date: datetime
    notes: Optional[str] = None


class WatchlistCreate(BaseModel):
    stock_id: int
    target_buy_price: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None


class WatchlistUpdate(BaseModel):
    target_buy_price: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None
    alert_enabled: Optional[bool] = None


class TradingRuleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    rule_type: Literal["entry", "exit", "position_size"]
    condition: str = Field(..., min_length=1)
    value: Optional[float] = None
    description: Optional[str] = None
    is_active: bool = True


class TradingRuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    rule_type: Optional[Literal["entry", "exit", "position_size"]] = None
    condition: Optional[str] = Field(None, min_length=1)
    value: Optional[float] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class PositionSizeRequest(BaseModel):
    portfolio_value: float = Field(..., gt=0)
    risk_percent: float = Field(..., gt=0, le=100)
    entry_price: float = Field(..., gt=0)
    stop_loss: float = Field(..., ge=0)
