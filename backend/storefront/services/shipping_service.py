"""
Shipping zone detection, cost calculation and delivery estimates.

Addresses may be plain dicts (as stored on orders) or pydantic models; only
``city``, ``state``, ``country`` and ``postal_code`` are read.
"""
import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from storefront.config.shipping import (
    COUNTRY_NAMES,
    COURIER_PARTNERS,
    DEFAULT_DOMESTIC_ZONE,
    DEFAULT_INTERNATIONAL_ZONE,
    HOLIDAYS,
    INDIA_ALIASES,
    ORDER_CUTOFF_HOUR,
    PROCESSING_DAYS,
    SHIPPING_ZONES,
    WORKING_WEEKDAYS,
    ShippingZone,
)

logger = logging.getLogger(__name__)

INDIAN_PIN_RE = re.compile(r"^\d{6}$")

_NAME_TO_CODE = {name.lower(): code for code, name in COUNTRY_NAMES.items()}


def _field(address: Any, name: str) -> str:
    if address is None:
        return ""
    if isinstance(address, dict):
        value = address.get(name)
    else:
        value = getattr(address, name, None)
    return (value or "").strip() if isinstance(value, str) else ""


def normalize_country(country: str) -> str:
    """Map a country code or English name to an upper-case ISO code."""
    country = (country or "").strip()
    if country.upper() in INDIA_ALIASES:
        return "IN"
    return _NAME_TO_CODE.get(country.lower(), country.upper())


def get_zone(zone_id: str) -> Optional[ShippingZone]:
    return next((z for z in SHIPPING_ZONES if z.id == zone_id), None)


def get_available_zones() -> List[ShippingZone]:
    return [z for z in SHIPPING_ZONES if z.is_active]


def _state_matches(state: str, zone: ShippingZone) -> bool:
    state = state.lower()
    return any(s.lower() in state or state in s.lower() for s in zone.states)


def detect_zone(address: Any) -> ShippingZone:
    """
    Pick the shipping zone for an address.

    Indian addresses are matched on state (Kashmir first, then metros, then
    the rest of India); an empty state never matches a named zone. Other
    countries are matched on country code with a catch-all international zone.
    """
    country = normalize_country(_field(address, "country"))

    if country == "IN":
        state = _field(address, "state")
        if state:
            for zone in SHIPPING_ZONES:
                if zone.states and "IN" in zone.countries and _state_matches(state, zone):
                    return zone
        return get_zone(DEFAULT_DOMESTIC_ZONE)

    for zone in SHIPPING_ZONES:
        if zone.is_international and country in zone.countries:
            return zone
    return get_zone(DEFAULT_INTERNATIONAL_ZONE)


def is_working_day(day: date) -> bool:
    return day.weekday() in WORKING_WEEKDAYS and day.isoformat() not in HOLIDAYS


def add_business_days(start: date, days: int) -> date:
    """Advance ``start`` by ``days`` working days (Mon-Sat, skipping holidays)."""
    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if is_working_day(result):
            added += 1
    return result


def estimate_delivery(zone: ShippingZone, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    processing_days = PROCESSING_DAYS
    if now.hour >= ORDER_CUTOFF_HOUR:
        processing_days += 1

    today = now.date()
    min_date = add_business_days(today, processing_days + zone.min_days)
    max_date = add_business_days(today, processing_days + zone.max_days)
    return {
        "min": zone.min_days,
        "max": zone.max_days,
        "min_date": min_date.isoformat(),
        "max_date": max_date.isoformat(),
    }


def select_courier(zone: ShippingZone) -> str:
    if zone.is_international:
        return COURIER_PARTNERS["international"][0]
    return COURIER_PARTNERS["domestic"][0]


def calculate_shipping(address: Any, order_total: float, now: Optional[datetime] = None) -> Dict[str, Any]:
    zone = detect_zone(address)
    is_free = order_total >= zone.free_shipping_threshold
    return {
        "zone": {"id": zone.id, "name": zone.name, "description": zone.description},
        "base_rate": zone.base_rate,
        "shipping_cost": 0 if is_free else zone.base_rate,
        "is_free_shipping": is_free,
        "free_shipping_threshold": zone.free_shipping_threshold,
        "amount_to_free_shipping": round(max(0.0, zone.free_shipping_threshold - order_total), 2),
        "estimated_delivery": estimate_delivery(zone, now),
        "courier_partner": select_courier(zone),
    }


def format_display_date(iso_date: str) -> str:
    """``2025-01-15`` -> ``Jan 15, 2025``"""
    parsed = date.fromisoformat(iso_date)
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def get_shipping_info(address: Any, order_total: float, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Condensed, display-ready version of :func:`calculate_shipping`."""
    calc = calculate_shipping(address, order_total, now)
    delivery = calc["estimated_delivery"]
    return {
        "zone_name": calc["zone"]["name"],
        "shipping_cost": calc["shipping_cost"],
        "is_free_shipping": calc["is_free_shipping"],
        "free_shipping_threshold": calc["free_shipping_threshold"],
        "amount_to_free_shipping": calc["amount_to_free_shipping"],
        "delivery_estimate": (
            f"{format_display_date(delivery['min_date'])} - {format_display_date(delivery['max_date'])}"
        ),
        "courier_partner": calc["courier_partner"],
    }


def validate_address(address: Any) -> Dict[str, Any]:
    errors = []
    if not _field(address, "city"):
        errors.append("City is required")
    if not _field(address, "state"):
        errors.append("State is required")
    if not _field(address, "country"):
        errors.append("Country is required")

    postal_code = _field(address, "postal_code")
    if not postal_code:
        errors.append("Postal code is required")
    elif normalize_country(_field(address, "country")) == "IN" and not INDIAN_PIN_RE.match(postal_code):
        errors.append("Invalid Indian PIN code. Must be 6 digits.")

    return {"is_valid": not errors, "errors": errors}


def is_serviceable(address: Any) -> bool:
    return detect_zone(address).is_active
