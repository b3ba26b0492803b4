"""Pydantic v2 request/response schemas for quote endpoints.

Money crosses the API as integer minor units only.
"""

import uuid
from datetime import date

from pydantic import BaseModel, model_validator

from stayengine.money import MoneyMinor
from stayengine.pricing.engine import PriceQuote
from stayengine.pricing.quotes import HostQuote, StayQuote

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class QuoteRequest(BaseModel):
    unit_id: uuid.UUID
    check_in: date
    check_out: date


class HostQuoteRequest(BaseModel):
    """Nightly amount the host wants to receive, in minor units."""

    host_net_nightly_minor: MoneyMinor

    @model_validator(mode="after")
    def check_positive(self) -> "HostQuoteRequest":
        if self.host_net_nightly_minor <= 0:
            raise ValueError("host_net_nightly_minor must be positive")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class FeeBreakdown(BaseModel):
    service_fee_minor: int
    processor_fee_minor: int
    service_fee_bps: int
    processor_var_bps: int
    processor_fixed_minor: int
    service_fee_capped: bool = False
    service_fee_waived: bool = False

    @classmethod
    def from_price(cls, price: PriceQuote) -> "FeeBreakdown":
        return cls(
            service_fee_minor=price.service_fee_minor,
            processor_fee_minor=price.processor_fee_minor,
            service_fee_bps=price.service_fee_bps,
            processor_var_bps=price.processor_var_bps,
            processor_fixed_minor=price.processor_fixed_minor,
            service_fee_capped=price.service_fee_capped,
            service_fee_waived=price.service_fee_waived,
        )


class QuoteResponse(BaseModel):
    """Fee-inclusive quote for a stay."""

    unit_id: uuid.UUID
    check_in: date
    check_out: date
    nights: int
    currency: str
    nightly_rate_minor: int
    host_net_total_minor: int
    guest_total_minor: int
    guest_unit_price_minor: int
    fee_breakdown: FeeBreakdown
    pricing_version: str

    @classmethod
    def from_quote(cls, quote: StayQuote) -> "QuoteResponse":
        return cls(
            unit_id=quote.unit_id,
            check_in=quote.check_in,
            check_out=quote.check_out,
            nights=quote.nights,
            currency=quote.currency,
            nightly_rate_minor=quote.nightly_rate_minor,
            host_net_total_minor=quote.host_net_total_minor,
            guest_total_minor=quote.guest_total_minor,
            guest_unit_price_minor=quote.unit_price_minor,
            fee_breakdown=FeeBreakdown.from_price(quote.price),
            pricing_version=quote.pricing_version,
        )


class HostQuoteResponse(BaseModel):
    host_net_nightly_minor: int
    guest_nightly_minor: int
    fee_breakdown: FeeBreakdown
    pricing_version: str

    @classmethod
    def from_quote(cls, quote: HostQuote) -> "HostQuoteResponse":
        return cls(
            host_net_nightly_minor=quote.host_net_nightly_minor,
            guest_nightly_minor=quote.guest_nightly_minor,
            fee_breakdown=FeeBreakdown.from_price(quote.price),
            pricing_version=quote.price.pricing_version,
        )
