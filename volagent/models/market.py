from __future__ import annotations

from datetime import date, datetime
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


class MarketObservation(BaseModel):
    """One sampled price/volume point for a symbol."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    price: float = Field(gt=0)
    volume: int = Field(ge=0)
    timestamp: int  # milliseconds since epoch

    @field_validator("volume", mode="before")
    @classmethod
    def coerce_volume(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, value: Any) -> int:
        if isinstance(value, datetime):
            return int(value.timestamp() * 1000)
        return int(value)


class StrikeQuote(BaseModel):
    """Call and put market at a single strike of one expiration."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    strike: float = Field(gt=0)
    call_bid: float = Field(default=0.0, ge=0, alias="callBid")
    call_ask: float = Field(default=0.0, ge=0, alias="callAsk")
    call_volume: int = Field(default=0, ge=0, alias="callVolume")
    call_open_interest: int = Field(default=0, ge=0, alias="callOpenInterest")
    put_bid: float = Field(default=0.0, ge=0, alias="putBid")
    put_ask: float = Field(default=0.0, ge=0, alias="putAsk")
    put_volume: int = Field(default=0, ge=0, alias="putVolume")
    put_open_interest: int = Field(default=0, ge=0, alias="putOpenInterest")

    @field_validator("call_volume", "call_open_interest", "put_volume", "put_open_interest", mode="before")
    @classmethod
    def coerce_int(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("strike", "call_bid", "call_ask", "put_bid", "put_ask", mode="before")
    @classmethod
    def coerce_float(cls, value: Any) -> float:
        return float(value or 0.0)

    @model_validator(mode="after")
    def check_crossed_markets(self) -> "StrikeQuote":
        for side, bid, ask in (("call", self.call_bid, self.call_ask), ("put", self.put_bid, self.put_ask)):
            if bid > 0 and ask > 0 and ask < bid:
                raise ValueError(f"{side} ask {ask} is below bid {bid} at strike {self.strike}")
        return self

    @property
    def call_mid(self) -> float:
        return (self.call_bid + self.call_ask) / 2


class OptionsSnapshot(BaseModel):
    """Options chain for one symbol, with an aggregate IV and a representative quote."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    symbol: str
    strikes: List[StrikeQuote] = Field(default_factory=list)
    expiration: date
    iv: float = Field(default=0.0, ge=0)  # percent
    volume: int = Field(default=0, ge=0)
    open_interest: int = Field(default=0, ge=0, alias="openInterest")
    bid: float = Field(default=0.0, ge=0)
    ask: float = Field(default=0.0, ge=0)

    @field_validator("expiration", mode="before")
    @classmethod
    def parse_expiration(cls, value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            return datetime.strptime(value[:10], "%Y-%m-%d").date()
        raise ValueError("Unsupported expiration format")

    @field_validator("volume", "open_interest", mode="before")
    @classmethod
    def coerce_int(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("strikes")
    @classmethod
    def sort_strikes(cls, value: List[StrikeQuote]) -> List[StrikeQuote]:
        return sorted(value, key=lambda quote: quote.strike)

    @model_validator(mode="after")
    def check_representative_quote(self) -> "OptionsSnapshot":
        if self.ask < self.bid:
            raise ValueError(f"Representative ask {self.ask} is below bid {self.bid}")
        return self

    @computed_field  # type: ignore[misc]
    @property
    def spread(self) -> float:
        return self.ask - self.bid

    @property
    def days_to_expiration(self) -> int:
        return (self.expiration - date.today()).days
