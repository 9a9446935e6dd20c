"""Shipping zones, rates and delivery calendar.

Rates and thresholds are in INR. Zones are matched in the order they appear
for India (kashmir -> india-metro -> india-rest) and by country code for
international destinations.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class ShippingZone:
    id: str
    name: str
    description: str
    countries: Tuple[str, ...]
    base_rate: float
    free_shipping_threshold: float
    min_days: int
    max_days: int
    states: Tuple[str, ...] = field(default_factory=tuple)
    is_active: bool = True

    @property
    def is_international(self) -> bool:
        return self.id.startswith("international")

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "countries": list(self.countries),
            "states": list(self.states),
            "base_rate": self.base_rate,
            "free_shipping_threshold": self.free_shipping_threshold,
            "estimated_delivery_days": {"min": self.min_days, "max": self.max_days},
            "is_active": self.is_active,
        }


# ============================================================================
# ZONES
# ============================================================================
SHIPPING_ZONES: List[ShippingZone] = [
    ShippingZone(
        id="kashmir",
        name="Kashmir & J&K",
        description="Jammu & Kashmir, Ladakh",
        countries=("IN",),
        states=("Jammu and Kashmir", "Jammu & Kashmir", "J&K", "Kashmir", "Ladakh"),
        base_rate=50,
        free_shipping_threshold=2000,
        min_days=2,
        max_days=3,
    ),
    ShippingZone(
        id="india-metro",
        name="India - Metro Cities",
        description="Delhi, Mumbai, Bangalore, Chennai, Kolkata, Hyderabad",
        countries=("IN",),
        states=("Delhi", "NCR", "Maharashtra", "Karnataka", "Tamil Nadu", "West Bengal", "Telangana"),
        base_rate=100,
        free_shipping_threshold=2000,
        min_days=3,
        max_days=5,
    ),
    ShippingZone(
        id="india-rest",
        name="Rest of India",
        description="All other Indian states and territories",
        countries=("IN",),
        base_rate=100,
        free_shipping_threshold=2000,
        min_days=5,
        max_days=7,
    ),
    ShippingZone(
        id="international-gcc",
        name="GCC Countries",
        description="UAE, Saudi Arabia, Qatar, Kuwait, Bahrain, Oman",
        countries=("AE", "SA", "QA", "KW", "BH", "OM"),
        base_rate=500,
        free_shipping_threshold=5000,
        min_days=7,
        max_days=10,
    ),
    ShippingZone(
        id="international-us-uk",
        name="USA & UK",
        description="United States and United Kingdom",
        countries=("US", "GB"),
        base_rate=800,
        free_shipping_threshold=8000,
        min_days=10,
        max_days=14,
    ),
    ShippingZone(
        id="international-other",
        name="Other International",
        description="Canada, Australia, Europe, and other countries",
        countries=("CA", "AU", "NZ", "SG", "MY"),
        base_rate=1000,
        free_shipping_threshold=10000,
        min_days=10,
        max_days=14,
    ),
]

DEFAULT_INTERNATIONAL_ZONE = "international-other"
DEFAULT_DOMESTIC_ZONE = "india-rest"

INDIA_ALIASES = ("IN", "INDIA")

# ============================================================================
# CALENDAR / COURIERS
# ============================================================================
PROCESSING_DAYS = 1
ORDER_CUTOFF_HOUR = 14  # orders at or after 14:00 ship a day later

# Monday=0 ... Saturday=5; Sunday is off
WORKING_WEEKDAYS = (0, 1, 2, 3, 4, 5)

HOLIDAYS = frozenset({
    "2025-01-26",  # Republic Day
    "2025-03-14",  # Holi
    "2025-08-15",  # Independence Day
    "2025-10-02",  # Gandhi Jayanti
    "2025-10-24",  # Diwali
    "2025-12-25",  # Christmas
})

COURIER_PARTNERS = {
    "domestic": ["Blue Dart", "Delhivery", "DTDC"],
    "international": ["DHL", "FedEx", "Aramex"],
}

COUNTRY_NAMES: Dict[str, str] = {
    "IN": "India",
    "AE": "United Arab Emirates",
    "SA": "Saudi Arabia",
    "QA": "Qatar",
    "KW": "Kuwait",
    "BH": "Bahrain",
    "OM": "Oman",
    "US": "United States",
    "GB": "United Kingdom",
    "CA": "Canada",
    "AU": "Australia",
    "NZ": "New Zealand",
    "SG": "Singapore",
    "MY": "Malaysia",
}
