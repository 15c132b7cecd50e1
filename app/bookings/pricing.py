"""
Booking price computation.

All amounts are integer cents. Percentages are applied with Decimal
arithmetic and rounded half-up to whole cents.

Usage:
    from bookings.pricing import quote

    q = quote(listing, date(2026, 1, 10), date(2026, 1, 15))
    q.total_cents  # base + platform fee + service fee
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

WEEKLY_MIN_NIGHTS = 7
WEEKLY_DISCOUNT_PERCENT = 10
MONTHLY_MIN_NIGHTS = 30
MONTHLY_DISCOUNT_PERCENT = 20


@dataclass(frozen=True)
class PriceQuote:
    nights: int
    base_price_cents: int
    discount_cents: int
    platform_fee_cents: int
    service_fee_cents: int
    deposit_cents: int
    total_cents: int
    currency: str


def round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount_cents: int, percent) -> int:
    """``percent`` % of ``amount_cents``, rounded half-up to a whole cent."""
    return round_cents(Decimal(amount_cents) * Decimal(str(percent)) / 100)


def fraction_of(amount_cents: int, fraction: Decimal) -> int:
    """``fraction`` (0..1) of ``amount_cents``, rounded half-up to a whole cent."""
    return round_cents(Decimal(amount_cents) * Decimal(str(fraction)))


def duration_discount_percent(nights: int) -> int:
    """Highest applicable length-of-stay discount; discounts don't stack."""
    if nights >= MONTHLY_MIN_NIGHTS:
        return MONTHLY_DISCOUNT_PERCENT
    if nights >= WEEKLY_MIN_NIGHTS:
        return WEEKLY_DISCOUNT_PERCENT
    return 0


def quote(listing, start_date: date, end_date: date) -> PriceQuote:
    """
    Price a stay of [start_date, end_date) at ``listing``.

    The caller validates the range; nights must be positive.
    """
    nights = (end_date - start_date).days
    gross = nights * listing.daily_price_cents
    discount = percent_of(gross, duration_discount_percent(nights))
    base = gross - discount

    platform_fee = percent_of(base, settings.PLATFORM_FEE_PERCENT)
    service_fee = percent_of(base, settings.SERVICE_FEE_PERCENT)

    return PriceQuote(
        nights=nights,
        base_price_cents=base,
        discount_cents=discount,
        platform_fee_cents=platform_fee,
        service_fee_cents=service_fee,
        deposit_cents=listing.deposit_for(base),
        total_cents=base + platform_fee + service_fee,
        currency=listing.currency,
    )
