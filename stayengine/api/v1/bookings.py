"""Bookings API routes."""

from fastapi import APIRouter, Depends, status

from stayengine.api.deps import get_quote_service, get_record_store
from stayengine.pricing.quotes import QuoteService
from stayengine.schemas.booking import BookingCreate, BookingResponse
from stayengine.services.booking_service import create_booking
from stayengine.services.record_store import RecordStore

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book a nightly stay",
)
async def create_booking_endpoint(
    body: BookingCreate,
    store: RecordStore = Depends(get_record_store),
    quotes: QuoteService = Depends(get_quote_service),
) -> BookingResponse:
    """Reserve the stay with a pricing snapshot; 409 ``date_conflict`` if any night is taken."""
    booking = await create_booking(
        store,
        quotes,
        body.unit_id,
        body.check_in,
        body.check_out,
        guest_name=body.guest_name,
        channel=body.channel,
    )
    return BookingResponse.model_validate(booking)
