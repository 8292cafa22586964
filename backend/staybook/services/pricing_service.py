"""Pricing calculator for nightly stays.

``calculate_price`` is a pure function: it reads the property's pricing
attributes and never touches storage, so identical inputs always produce an
identical breakdown.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol

MONEY_PLACES = Decimal("0.01")
SERVICE_FEE_RATE = Decimal("0.10")
TAX_RATE = Decimal("0.06")
ZERO = Decimal("0.00")


class PricedProperty(Protocol):
    """Property attributes the calculator depends on."""

    base_price_per_night: Decimal
    cleaning_fee: Decimal | None
    extra_guest_fee: Decimal | None
    currency: str
    guest_count: int


@dataclass(frozen=True, slots=True)
class PriceBreakdown:
    """Itemised price for a stay."""

    nights: int
    base_price: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes_and_fees: Decimal
    extra_guest_fee: Decimal
    total_price: Decimal
    currency: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize the breakdown to plain types for responses."""
        return {
            "nights": self.nights,
            "base_price": _to_str(self.base_price),
            "cleaning_fee": _to_str(self.cleaning_fee),
            "service_fee": _to_str(self.service_fee),
            "taxes_and_fees": _to_str(self.taxes_and_fees),
            "extra_guest_fee": _to_str(self.extra_guest_fee),
            "total_price": _to_str(self.total_price),
            "currency": self.currency,
        }


def _to_money(value: Decimal | int | str | None) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _to_str(value: Decimal) -> str:
    return f"{value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP):.2f}"


def calculate_price(
    listing: PricedProperty, *, nights: int, guest_count: int
) -> PriceBreakdown:
    """Return the price breakdown for ``nights`` nights and ``guest_count`` guests.

    Each component is rounded to the currency's minor unit before summing, so
    ``total_price`` is exactly the sum of the components.
    """
    if nights < 1:
        raise ValueError("nights must be at least 1")

    nightly = _to_money(listing.base_price_per_night)
    base_price = _to_money(nightly * nights)
    cleaning_fee = _to_money(listing.cleaning_fee)
    service_fee = _to_money(base_price * SERVICE_FEE_RATE)
    taxes_and_fees = _to_money(base_price * TAX_RATE)

    extra_guests = max(0, guest_count - listing.guest_count)
    extra_guest_fee = _to_money(_to_money(listing.extra_guest_fee) * extra_guests * nights)

    total_price = base_price + cleaning_fee + service_fee + taxes_and_fees + extra_guest_fee

    return PriceBreakdown(
        nights=nights,
        base_price=base_price,
        cleaning_fee=cleaning_fee,
        service_fee=service_fee,
        taxes_and_fees=taxes_and_fees,
        extra_guest_fee=extra_guest_fee,
        total_price=total_price,
        currency=listing.currency,
    )
