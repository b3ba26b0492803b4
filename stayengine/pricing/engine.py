"""All-in pricing engine.

Derives the guest-facing total backwards from the amount the host must
receive. The processor keeps ``processor_var_bps`` of whatever the guest pays
plus a fixed amount, so the total is the net plus fees divided by
``(1 - processor rate)``, rounded up. Rounding up means the host is never
short-paid; the platform absorbs the fraction of a minor unit.

All arithmetic is integer arithmetic on basis points. With a 6% service fee
and a 2.9% + 20 processor fee, a host net of 10000 prices as service 600,
processor 338, total 10938.
"""

from dataclasses import dataclass
from decimal import Decimal

from stayengine.errors import PricingInvariantViolation, ValidationError
from stayengine.money import ensure_minor

BPS_DENOMINATOR = 10_000


def rate_to_bps(rate: Decimal, field: str = "rate") -> int:
    """Convert a fractional rate (``Decimal("0.029")``) to whole basis points."""
    if isinstance(rate, float):
        raise ValidationError(f"{field} must be a Decimal, not a float", code="invalid_rate")
    bps = Decimal(rate) * BPS_DENOMINATOR
    if not bps.is_finite() or bps != bps.to_integral_value():
        raise ValidationError(f"{field} must be a whole number of basis points", code="invalid_rate")
    return int(bps)


def round_half_up_div(numerator: int, denominator: int) -> int:
    """``round_half_up(numerator / denominator)`` for non-negative integers."""
    return (2 * numerator + denominator) // (2 * denominator)


def ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


@dataclass(frozen=True)
class FeeConfig:
    """Flat fee configuration. Read-only once built."""

    service_fee_bps: int
    processor_var_bps: int
    processor_fixed_minor: int

    def __post_init__(self) -> None:
        if self.service_fee_bps < 0:
            raise ValidationError("service fee rate must not be negative", code="invalid_rate")
        if not 0 <= self.processor_var_bps < BPS_DENOMINATOR:
            raise ValidationError("processor rate must be in [0, 1)", code="invalid_rate")
        ensure_minor(self.processor_fixed_minor, "processor_fixed_minor")

    @classmethod
    def from_rates(
        cls,
        service_fee_rate: Decimal,
        processor_percent_rate: Decimal,
        processor_fixed_minor: int,
    ) -> "FeeConfig":
        return cls(
            service_fee_bps=rate_to_bps(service_fee_rate, "service_fee_rate"),
            processor_var_bps=rate_to_bps(processor_percent_rate, "processor_percent_rate"),
            processor_fixed_minor=processor_fixed_minor,
        )


@dataclass(frozen=True)
class ServiceFee:
    """A service fee derived outside the flat rate (tiered, capped or waived)."""

    amount_minor: int
    bps: int
    capped: bool = False
    waived: bool = False


@dataclass(frozen=True)
class ServiceFeeTiers:
    """Basis-point tiers keyed by stay length, with an absolute cap.

    ``tiers`` holds ``(min_nights, bps)`` pairs; the tier with the largest
    ``min_nights`` not exceeding the stay length applies.
    """

    tiers: tuple[tuple[int, int], ...]
    cap_minor: int | None = None

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValidationError("at least one service fee tier is required", code="invalid_rate")
        ordered = tuple(sorted(self.tiers))
        if ordered[0][0] > 1:
            raise ValidationError("the first service fee tier must start at one night", code="invalid_rate")
        if any(bps < 0 for _, bps in ordered):
            raise ValidationError("service fee tiers must not be negative", code="invalid_rate")
        object.__setattr__(self, "tiers", ordered)

    def bps_for(self, nights: int) -> int:
        bps = self.tiers[0][1]
        for min_nights, tier_bps in self.tiers:
            if nights >= min_nights:
                bps = tier_bps
        return bps

    def service_fee(self, base_minor: int, nights: int, first_completed_booking: bool = False) -> ServiceFee:
        """Derive the service fee for ``base_minor`` over a stay of ``nights``.

        A host's first completed booking carries no service fee at all.
        """
        if first_completed_booking:
            return ServiceFee(amount_minor=0, bps=0, waived=True)
        bps = self.bps_for(nights)
        amount = round_half_up_div(base_minor * bps, BPS_DENOMINATOR)
        if self.cap_minor is not None and amount > self.cap_minor:
            return ServiceFee(amount_minor=self.cap_minor, bps=bps, capped=True)
        return ServiceFee(amount_minor=amount, bps=bps)


@dataclass(frozen=True)
class PriceQuote:
    base_minor: int
    service_fee_minor: int
    processor_fee_minor: int
    total_minor: int
    pricing_version: str
    service_fee_bps: int
    processor_var_bps: int
    processor_fixed_minor: int
    service_fee_capped: bool = False
    service_fee_waived: bool = False


def price(
    base_minor: int,
    fee_config: FeeConfig,
    service_fee: ServiceFee | None = None,
    pricing_version: str = "all_in_v1",
) -> PriceQuote:
    """Return the fee-inclusive quote that pays the host exactly ``base_minor``.

    ``service_fee`` overrides the flat ``fee_config.service_fee_bps``
    derivation; everything after the service fee is identical either way.
    """
    base_minor = ensure_minor(base_minor, "base_minor")

    if service_fee is None:
        service_fee = ServiceFee(
            amount_minor=round_half_up_div(base_minor * fee_config.service_fee_bps, BPS_DENOMINATOR),
            bps=fee_config.service_fee_bps,
        )
    service_fee_minor = ensure_minor(service_fee.amount_minor, "service_fee_minor")

    net_after_service = base_minor + service_fee_minor
    total_minor = ceil_div(
        (net_after_service + fee_config.processor_fixed_minor) * BPS_DENOMINATOR,
        BPS_DENOMINATOR - fee_config.processor_var_bps,
    )
    processor_fee_minor = total_minor - net_after_service

    if total_minor - service_fee_minor - processor_fee_minor != base_minor or processor_fee_minor < 0:
        raise PricingInvariantViolation(
            f"total {total_minor} - fees ({service_fee_minor} + {processor_fee_minor}) != base {base_minor}"
        )

    return PriceQuote(
        base_minor=base_minor,
        service_fee_minor=service_fee_minor,
        processor_fee_minor=processor_fee_minor,
        total_minor=total_minor,
        pricing_version=pricing_version,
        service_fee_bps=service_fee.bps,
        processor_var_bps=fee_config.processor_var_bps,
        processor_fixed_minor=fee_config.processor_fixed_minor,
        service_fee_capped=service_fee.capped,
        service_fee_waived=service_fee.waived,
    )


@dataclass(frozen=True)
class FeeSchedule:
    """Everything needed to price a stay: flat config plus the optional tier table."""

    fee_config: FeeConfig
    tiers: ServiceFeeTiers | None = None
    flat_pricing_version: str = "all_in_v1"
    tiered_pricing_version: str = "all_in_v2_tiers_cap_firstfree"

    @property
    def pricing_version(self) -> str:
        return self.tiered_pricing_version if self.tiers is not None else self.flat_pricing_version

    def price_stay(self, base_minor: int, nights: int, first_completed_booking: bool = False) -> PriceQuote:
        service_fee = None
        if self.tiers is not None:
            service_fee = self.tiers.service_fee(
                ensure_minor(base_minor, "base_minor"), nights, first_completed_booking
            )
        return price(base_minor, self.fee_config, service_fee, self.pricing_version)

    def price_flat(self, base_minor: int) -> PriceQuote:
        """Flat-rate quote tagged with the flat pricing version, whatever the tier table."""
        return price(base_minor, self.fee_config, None, self.flat_pricing_version)
