"""Fee-inclusive pricing: the engine and the stay quote service."""

from functools import lru_cache

from stayengine.config import settings
from stayengine.pricing.engine import FeeConfig, FeeSchedule, ServiceFeeTiers


@lru_cache
def get_fee_schedule() -> FeeSchedule:
    """Build the process-wide fee schedule from settings, once."""
    tiers = None
    if settings.fee_model == "tiered":
        tiers = ServiceFeeTiers(
            tiers=tuple((int(n), int(bps)) for n, bps in settings.service_fee_tiers),
            cap_minor=settings.service_fee_cap_minor,
        )
    return FeeSchedule(
        fee_config=FeeConfig.from_rates(
            settings.service_fee_rate,
            settings.processor_percent_rate,
            settings.processor_fixed_minor,
        ),
        tiers=tiers,
        flat_pricing_version=settings.flat_pricing_version,
        tiered_pricing_version=settings.tiered_pricing_version,
    )


__all__ = ["get_fee_schedule"]
