"""
hotelops/domain/pricing.py

Stay pricing and per-room-type presentation metadata.

All money is Decimal, rounded to cents with ROUND_HALF_UP.
"""
import math
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Union

from core.errors import ValidationError
from hotelops.models.schemas import PriceQuote

CENT = Decimal("0.01")
DEFAULT_TAX_RATE = Decimal("0.12")
SECONDS_PER_DAY = 24 * 60 * 60

ROOM_AMENITIES: Dict[str, List[str]] = {
    "Standard Queen": ["Free WiFi", "Air Conditioning", "TV", "Coffee Maker"],
    "Standard King": ["Free WiFi", "Air Conditioning", "TV", "Coffee Maker", "Work Desk"],
    "Deluxe Queen": ["Free WiFi", "Air Conditioning", "TV", "Coffee Maker", "Balcony", "Mini Fridge"],
    "Deluxe King": [
        "Free WiFi", "Air Conditioning", "TV", "Coffee Maker", "Work Desk", "Balcony", "Mini Fridge",
    ],
    "Suite": [
        "Free WiFi", "Air Conditioning", "TV", "Coffee Maker", "Living Area", "Kitchenette", "Balcony",
    ],
    "Penthouse Suite": [
        "Free WiFi", "Air Conditioning", "TV", "Coffee Maker", "Living Area", "Full Kitchen",
        "Balcony", "Jacuzzi",
    ],
}
DEFAULT_AMENITIES = ["Free WiFi", "Air Conditioning", "TV"]

# Placeholder gallery; every room type shares it for now.
ROOM_PHOTOS = [
    "https://images.unsplash.com/photo-1631049307264-da0ec9d70304?w=400",
    "https://images.unsplash.com/photo-1566665797739-1674de7a421a?w=400",
]


def round2(value: Union[Decimal, int, float, str]) -> Decimal:
    """Round to two decimal places, half up (2.345 -> 2.35)."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_nights(check_in: Union[date, datetime], check_out: Union[date, datetime]) -> int:
    """
    Number of nights between two dates, partial days rounded up.

    Raises:
        ValidationError: check_in is not before check_out
    """
    if check_in >= check_out:
        raise ValidationError(
            "check_in must be before check_out",
            {"check_in": str(check_in), "check_out": str(check_out)},
        )
    delta = check_out - check_in
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def calculate_total(nightly_rate: Union[Decimal, int, str], nights: int,
                    tax_rate: Decimal = DEFAULT_TAX_RATE) -> PriceQuote:
    """
    Price a stay.

        subtotal = rate * nights
        taxes    = round2(subtotal * tax_rate)
        total    = round2(subtotal + taxes)

    Example:
        >>> calculate_total(Decimal("100"), 2)
        PriceQuote(nights=2, subtotal=Decimal('200.00'), taxes=Decimal('24.00'), total=Decimal('224.00'))
    """
    if nights < 0:
        raise ValidationError("nights cannot be negative", {"nights": nights})
    subtotal = Decimal(str(nightly_rate)) * nights
    taxes = round2(subtotal * Decimal(str(tax_rate)))
    return PriceQuote(
        nights=nights,
        subtotal=round2(subtotal),
        taxes=taxes,
        total=round2(subtotal + taxes),
    )


def get_room_amenities(room_type: str) -> List[str]:
    return list(ROOM_AMENITIES.get(room_type, DEFAULT_AMENITIES))


def get_room_photos(room_type: str) -> List[str]:
    return list(ROOM_PHOTOS)


__all__ = [
    "DEFAULT_TAX_RATE",
    "round2",
    "calculate_nights",
    "calculate_total",
    "get_room_amenities",
    "get_room_photos",
]
