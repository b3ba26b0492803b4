"""Stay quote and host price preview API routes."""

from fastapi import APIRouter, Depends

from stayengine.api.deps import get_fee_schedule, get_quote_service
from stayengine.pricing.engine import FeeSchedule
from stayengine.pricing.quotes import QuoteService, host_quote
from stayengine.schemas.quote import (
    HostQuoteRequest,
    HostQuoteResponse,
    QuoteRequest,
    QuoteResponse,
)

router = APIRouter(prefix="/api/v1", tags=["quotes"])


@router.post(
    "/quotes",
    response_model=QuoteResponse,
    summary="Fee-inclusive quote for a stay",
)
async def create_quote(
    body: QuoteRequest,
    quotes: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    """Price ``[check_in, check_out)`` for the unit.

    Quotes do not check availability and never apply the first-booking
    waiver; the booking endpoint does both.
    """
    quote = await quotes.quote(body.unit_id, body.check_in, body.check_out)
    return QuoteResponse.from_quote(quote)


@router.post(
    "/pricing/host-quote",
    response_model=HostQuoteResponse,
    summary="Guest price for a host's nightly net amount",
)
async def create_host_quote(
    body: HostQuoteRequest,
    schedule: FeeSchedule = Depends(get_fee_schedule),
) -> HostQuoteResponse:
    return HostQuoteResponse.from_quote(host_quote(body.host_net_nightly_minor, schedule))
