"""Quote service — prices a multi-night stay for one unit.

The stay is priced once in aggregate (``nightly_rate * nights``) so rounding
never drifts across nights. The per-night figure shown to guests is either
an independent single-night quote through the same formula or the total
divided back down, depending on ``unit_price_mode``.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date

from stayengine.errors import UnitNotQuotable, ValidationError
from stayengine.money import ensure_minor
from stayengine.pricing.engine import FeeSchedule, PriceQuote, round_half_up_div
from stayengine.services.unit_directory import UnitDirectory, UnitInfo

logger = logging.getLogger(__name__)

UNIT_PRICE_INDEPENDENT = "independent"
UNIT_PRICE_DERIVED = "derived"


@dataclass(frozen=True)
class StayQuote:
    unit_id: uuid.UUID
    check_in: date
    check_out: date
    nights: int
    currency: str
    nightly_rate_minor: int
    unit_price_minor: int
    price: PriceQuote

    @property
    def host_net_total_minor(self) -> int:
        return self.price.base_minor

    @property
    def guest_total_minor(self) -> int:
        return self.price.total_minor

    @property
    def pricing_version(self) -> str:
        return self.price.pricing_version


@dataclass(frozen=True)
class HostQuote:
    """What a guest would pay for one night at ``host_net_nightly_minor``."""

    host_net_nightly_minor: int
    guest_nightly_minor: int
    price: PriceQuote


def count_nights(check_in: date, check_out: date) -> int:
    if check_out < check_in:
        raise ValidationError("check_out is before check_in", code="reversed_range")
    if check_out == check_in:
        raise ValidationError("A stay must be at least one night", code="zero_night_stay")
    return (check_out - check_in).days


def quote_for_unit(
    unit: UnitInfo,
    check_in: date,
    check_out: date,
    schedule: FeeSchedule,
    *,
    unit_price_mode: str = UNIT_PRICE_INDEPENDENT,
    first_completed_booking: bool = False,
) -> StayQuote:
    nights = count_nights(check_in, check_out)

    if unit.is_hourly:
        raise UnitNotQuotable("Hourly units are not priced per night")
    rate = unit.nightly_rate_minor
    if isinstance(rate, bool) or not isinstance(rate, int) or rate <= 0:
        raise UnitNotQuotable("Unit has no nightly rate")
    if nights < unit.min_nights:
        raise ValidationError(
            f"Minimum stay is {unit.min_nights} nights", code="below_minimum_stay"
        )

    quote = schedule.price_stay(rate * nights, nights, first_completed_booking)

    if unit_price_mode == UNIT_PRICE_DERIVED:
        unit_price = round_half_up_div(quote.total_minor, nights)
    else:
        # Same tier as the stay, so a long stay shows its discounted rate
        unit_price = schedule.price_stay(rate, nights, first_completed_booking).total_minor

    return StayQuote(
        unit_id=unit.id,
        check_in=check_in,
        check_out=check_out,
        nights=nights,
        currency=unit.currency,
        nightly_rate_minor=rate,
        unit_price_minor=unit_price,
        price=quote,
    )


def host_quote(host_net_nightly_minor: int, schedule: FeeSchedule) -> HostQuote:
    """Preview the guest-facing nightly price for a host's net nightly amount.

    Previews always use the flat fee model: tiers depend on stay length and
    the waiver on booking history, neither of which a bare nightly amount has.
    """
    amount = ensure_minor(host_net_nightly_minor, "host_net_nightly_minor")
    if amount <= 0:
        raise ValidationError("host_net_nightly_minor must be positive", code="invalid_amount")
    quote = schedule.price_flat(amount)
    return HostQuote(
        host_net_nightly_minor=amount,
        guest_nightly_minor=quote.total_minor,
        price=quote,
    )


class QuoteService:
    """Looks up the unit and prices the stay. Holds no per-request state."""

    def __init__(
        self,
        directory: UnitDirectory,
        schedule: FeeSchedule,
        unit_price_mode: str = UNIT_PRICE_INDEPENDENT,
    ) -> None:
        self.directory = directory
        self.schedule = schedule
        self.unit_price_mode = unit_price_mode

    async def quote(
        self,
        unit_id: uuid.UUID,
        check_in: date,
        check_out: date,
        first_completed_booking: bool = False,
    ) -> StayQuote:
        count_nights(check_in, check_out)
        unit = await self.directory.get_unit(unit_id)
        return self.quote_unit(unit, check_in, check_out, first_completed_booking)

    def quote_unit(
        self,
        unit: UnitInfo,
        check_in: date,
        check_out: date,
        first_completed_booking: bool = False,
    ) -> StayQuote:
        quote = quote_for_unit(
            unit,
            check_in,
            check_out,
            self.schedule,
            unit_price_mode=self.unit_price_mode,
            first_completed_booking=first_completed_booking,
        )
        logger.debug(
            "Quoted unit %s for %s nights: %s %s (%s)",
            unit.id,
            quote.nights,
            quote.guest_total_minor,
            quote.currency,
            quote.pricing_version,
        )
        return quote
