from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from storefront.auth.dependencies import get_current_user
from storefront.db.database import get_db
from storefront.models.models import Address, Profile
from storefront.schemas.schemas import AddressCreate, AddressResponse, AddressUpdate

# Router
router = APIRouter(prefix="/api/addresses", tags=["addresses"])


def _get_owned(db: Session, user: Profile, address_id: str) -> Address:
    address = (
        db.query(Address)
        .filter(Address.id == address_id, Address.user_id == user.id)
        .first()
    )
    if not address:
        raise HTTPException(status_code=404, detail="Address not found")
    return address


def _unset_other_defaults(db: Session, user: Profile, keep_id: str | None = None) -> None:
    query = db.query(Address).filter(Address.user_id == user.id, Address.is_default.is_(True))
    if keep_id:
        query = query.filter(Address.id != keep_id)
    query.update({Address.is_default: False}, synchronize_session=False)


@router.get("", response_model=List[AddressResponse])
def list_addresses(user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return (
        db.query(Address)
        .filter(Address.user_id == user.id)
        .order_by(Address.is_default.desc(), Address.created_at.desc())
        .all()
    )


@router.get("/{address_id}", response_model=AddressResponse)
def get_address(address_id: str, user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    return _get_owned(db, user, address_id)


@router.post("", response_model=AddressResponse, status_code=201)
def create_address(
    payload: AddressCreate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if payload.is_default:
        _unset_other_defaults(db, user)

    address = Address(user_id=user.id, **payload.model_dump())
    db.add(address)
    db.commit()
    db.refresh(address)
    return address


@router.put("/{address_id}", response_model=AddressResponse)
def update_address(
    address_id: str,
    payload: AddressUpdate,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    address = _get_owned(db, user, address_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("is_default"):
        _unset_other_defaults(db, user, keep_id=address.id)

    for field, value in values.items():
        setattr(address, field, value)
    db.commit()
    db.refresh(address)
    return address


@router.patch("/{address_id}/default", response_model=AddressResponse)
def set_default_address(
    address_id: str,
    user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    address = _get_owned(db, user, address_id)
    _unset_other_defaults(db, user, keep_id=address.id)
    address.is_default = True
    db.commit()
    db.refresh(address)
    return address


@router.delete("/{address_id}")
def delete_address(address_id: str, user: Profile = Depends(get_current_user), db: Session = Depends(get_db)):
    address = _get_owned(db, user, address_id)
    db.delete(address)
    db.commit()
    return {"message": "Address deleted successfully"}
