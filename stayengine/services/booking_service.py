"""Booking service — reserve a nightly stay with a frozen pricing snapshot.

The quote, the availability check and the insert run in one transaction
that holds the row locks of every unit the host owns. Two requests for
overlapping nights cannot both pass the check, and two first bookings for
one host cannot both take the first-booking waiver. The check is always
strict: a degraded verdict would read as "free".
"""

import logging
import uuid
from datetime import date

from stayengine.availability.aggregator import Window, aggregate
from stayengine.availability.intervals import local_midnight, normalize_all
from stayengine.errors import DateConflict
from stayengine.models import Booking
from stayengine.pricing.quotes import QuoteService, count_nights
from stayengine.services.record_store import BookingDraft, RecordStore

logger = logging.getLogger(__name__)


async def create_booking(
    store: RecordStore,
    quotes: QuoteService,
    unit_id: uuid.UUID,
    check_in: date,
    check_out: date,
    *,
    guest_name: str | None = None,
    channel: str = "direct",
) -> Booking:
    count_nights(check_in, check_out)
    unit = await quotes.directory.get_unit(unit_id)

    stay = Window(start=check_in, end=check_out, tz=unit.timezone)
    async with store.locked_unit(unit.id, host_id=unit.host_id) as tx:
        first_completed_booking = False
        if unit.host_id is not None:
            first_completed_booking = await tx.count_completed_bookings(unit.host_id) == 0
        quote = quotes.quote_unit(unit, check_in, check_out, first_completed_booking)

        bookings = await tx.fetch_bookings(stay)
        blocks = await tx.fetch_blocks(stay)
        verdict = aggregate(normalize_all(bookings, blocks, unit.timezone), stay)
        if not verdict.is_free(check_in, check_out):
            taken = sorted(verdict.disabled_days)
            logger.info("Rejected booking for unit %s: %d nights unavailable", unit.id, len(taken))
            raise DateConflict(
                f"Dates unavailable: {', '.join(day.isoformat() for day in taken)}"
            )

        booking = await tx.insert_booking(
            BookingDraft(
                unit_id=unit.id,
                check_in_at=local_midnight(check_in, unit.timezone),
                check_out_at=local_midnight(check_out, unit.timezone),
                nights=quote.nights,
                currency=quote.currency,
                host_net_total_minor=quote.host_net_total_minor,
                guest_total_minor=quote.guest_total_minor,
                guest_unit_price_minor=quote.unit_price_minor,
                service_fee_bps=quote.price.service_fee_bps,
                processor_var_bps=quote.price.processor_var_bps,
                processor_fixed_minor=quote.price.processor_fixed_minor,
                pricing_version=quote.pricing_version,
                channel=channel,
                guest_name=guest_name,
            )
        )

    logger.info(
        "Created booking %s on unit %s for %s..%s (%s %s)",
        booking.id,
        unit.id,
        check_in,
        check_out,
        quote.guest_total_minor,
        quote.currency,
    )
    return booking
