from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from issueboard.db import transaction
from issueboard.deps import get_current_user, get_db
from issueboard.errors import NotFound
from issueboard.models import Address, UserProfile
from issueboard.schemas import AddressCreateIn, AddressOut, AddressUpdateIn
from issueboard.store import get_by_public_id

router = APIRouter(prefix="/address", tags=["addresses"])


def _address_out(a: Address) -> AddressOut:
  return AddressOut(
    id=a.public_id,
    street=a.street,
    houseNumber=a.house_number,
    apartmentNumber=a.apartment_number,
    city=a.city,
    state=a.state,
    zipCode=a.zip_code,
    country=a.country,
  )


@router.post("", response_model=AddressOut, status_code=status.HTTP_201_CREATED)
async def create(payload: AddressCreateIn, user: UserProfile = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> AddressOut:
  # The new address becomes the caller's own address.
  async with transaction(db):
    a = Address(
      street=payload.street,
      house_number=payload.houseNumber,
      apartment_number=payload.apartmentNumber,
      city=payload.city,
      state=payload.state,
      zip_code=payload.zipCode,
      country=payload.country,
    )
    db.add(a)
    await db.flush()
    user.address_id = a.id
    await db.flush()
  return _address_out(a)


@router.get("/{address_id}", response_model=AddressOut, dependencies=[Depends(get_current_user)])
async def get_address(address_id: str, db: AsyncSession = Depends(get_db)) -> AddressOut:
  return _address_out(await get_by_public_id(db, Address, address_id, label="Address"))


@router.patch("/{address_id}", response_model=AddressOut)
async def update_address(
  address_id: str,
  payload: AddressUpdateIn,
  user: UserProfile = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> AddressOut:
  async with transaction(db):
    a = await get_by_public_id(db, Address, address_id, label="Address", for_update=True)
    if user.address_id != a.id:
      raise NotFound("Address not found")
    for attr, field_name in [
      ("street", "street"),
      ("house_number", "houseNumber"),
      ("city", "city"),
      ("state", "state"),
      ("zip_code", "zipCode"),
      ("country", "country"),
    ]:
      val = getattr(payload, field_name)
      if val is not None:
        setattr(a, attr, val)
    if "apartmentNumber" in payload.model_fields_set:
      a.apartment_number = payload.apartmentNumber
    await db.flush()
  return _address_out(a)
