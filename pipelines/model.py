"""Response models for the market statistics and lender rate payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pipelines.extraction.periods import MONTH_KEY_RE


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys; ``error`` only when set."""

        payload = self.model_dump(mode="json", by_alias=True)
        if payload.get("error") is None:
            payload.pop("error", None)
        return payload


class MarketMetrics(_Payload):
    """Metrics for one property type (single-family or condo) in one month."""

    median_price: Optional[int] = Field(default=None, description="Median sold price in USD.")
    closed: Optional[int] = Field(default=None, description="Closed sales in the month.")
    dom: Optional[int] = Field(default=None, description="Median days on market.")
    months_supply: Optional[float] = Field(
        default=None, description="Months of inventory at the current sales pace."
    )
    active_listings: Optional[int] = Field(
        default=None, description="Active listings at the end of the month."
    )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "MarketMetrics":
        return cls.model_validate(dict(record))


class MonthlyStats(_Payload):
    sf: MarketMetrics
    condo: MarketMetrics
    sf_report: str = Field(..., description="Source URL of the single-family report.")
    condo_report: str = Field(..., description="Source URL of the condo report.")


class MarketStatsResponse(_Payload):
    updated_at: date = Field(..., description="Freshness of the data (YYYY-MM-DD).")
    months: dict[str, MonthlyStats] = Field(default_factory=dict)
    error: Optional[str] = Field(
        default=None, description="Set when a fallback sample replaced live data."
    )

    @field_validator("months")
    @classmethod
    def _check_month_keys(cls, value: dict[str, MonthlyStats]) -> dict[str, MonthlyStats]:
        for key in value:
            if not MONTH_KEY_RE.match(key):
                raise ValueError(f"Month keys must be YYYY-MM, got {key!r}")
        return value


class LenderRate(_Payload):
    name: str
    product: str
    rate: Optional[float] = Field(default=None, description="Interest rate in percent.")
    apr: Optional[float] = Field(default=None, description="APR in percent.")
    url: str
    contact_url: Optional[str] = None
    updated_at: datetime
    order: int = 0


class RatesResponse(_Payload):
    generated_at: datetime
    lenders: list[LenderRate] = Field(default_factory=list)
    error: Optional[str] = None


__all__ = [
    "LenderRate",
    "MarketMetrics",
    "MarketStatsResponse",
    "MonthlyStats",
    "RatesResponse",
]
