from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PriceUpdate(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = Field(..., gt=0)
    observed_at: datetime = Field(default_factory=_utcnow)


class TrackRequest(BaseModel):
    model_config = {"extra": "ignore"}

    query: str


TrackStatus = Literal["tracking", "already_tracked", "unavailable"]


class TrackResult(BaseModel):
    symbol: str
    status: TrackStatus
    price: Optional[float] = None


class TrackResponse(BaseModel):
    results: List[TrackResult] = []


Direction = Literal["new", "up", "down", "unchanged"]


class TapeEntry(BaseModel):
    symbol: str
    price: Optional[float] = None
    previous_price: Optional[float] = None
    direction: Optional[Direction] = None
    unavailable: bool = False
    updated_at: Optional[datetime] = None


class MarketStatus(BaseModel):
    is_open: bool
    exchange_time: datetime
    timezone: str
