from fastapi import APIRouter, HTTPException

from storefront.errors import ValidationFailed
from storefront.schemas.schemas import ShippingAddress, ShippingCalculateRequest
from storefront.services import shipping_service

# Router
router = APIRouter(prefix="/api/shipping", tags=["shipping"])


@router.post("/calculate")
def calculate(payload: ShippingCalculateRequest):
    validation = shipping_service.validate_address(payload.address)
    if not validation["is_valid"]:
        raise ValidationFailed("Invalid shipping address", details={"errors": validation["errors"]})
    if not shipping_service.is_serviceable(payload.address):
        raise ValidationFailed("Sorry, we do not ship to this location yet.", code="NOT_SERVICEABLE")

    return {"data": shipping_service.calculate_shipping(payload.address, payload.order_total)}


@router.post("/info")
def shipping_info(payload: ShippingCalculateRequest):
    return {"data": shipping_service.get_shipping_info(payload.address, payload.order_total)}


@router.post("/validate-address")
def validate_address(address: ShippingAddress):
    validation = shipping_service.validate_address(address)
    data = dict(validation)
    if validation["is_valid"]:
        zone = shipping_service.detect_zone(address)
        data["zone"] = {"id": zone.id, "name": zone.name}
        data["is_serviceable"] = zone.is_active
    return {"data": data}


@router.get("/zones")
def list_zones():
    return {"data": [z.to_dict() for z in shipping_service.get_available_zones()]}


@router.get("/zones/{zone_id}")
def get_zone(zone_id: str):
    zone = shipping_service.get_zone(zone_id)
    if not zone:
        raise HTTPException(status_code=404, detail="Shipping zone not found")
    return {"data": zone.to_dict()}
