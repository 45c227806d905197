from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from core.auth import current_active_user, current_active_superuser
from db.database import get_async_session
from db.vendor import Vendor as VendorModel
from schemas.vendors import VendorRead, VendorCreate, VendorUpdate
from db.users import User

router = APIRouter()


async def _get_vendor_or_404(db: AsyncSession, vendor_id: UUID) -> VendorModel:
    res = await db.execute(select(VendorModel).where(VendorModel.id == vendor_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
    return m


@router.get("/", response_model=List[VendorRead])
async def list_vendors(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    res = await db.execute(select(VendorModel).order_by(func.lower(VendorModel.name).asc()))
    return [VendorRead(**v.to_schema) for v in res.scalars().all()]


@router.get("/{vendor_id}", response_model=VendorRead)
async def get_vendor(
    vendor_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    return VendorRead(**(await _get_vendor_or_404(db, vendor_id)).to_schema)


@router.post("/", response_model=VendorRead, status_code=status.HTTP_201_CREATED)
async def create_vendor(
    payload: VendorCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    existing = await db.execute(select(VendorModel).where(func.lower(VendorModel.name) == payload.name.lower()))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vendor already exists")

    m = VendorModel(**payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return VendorRead(**m.to_schema)


@router.patch("/{vendor_id}", response_model=VendorRead)
async def update_vendor(
    vendor_id: UUID,
    payload: VendorUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    m = await _get_vendor_or_404(db, vendor_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        name = data["name"].strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name is required")
        clash = await db.execute(
            select(VendorModel).where(func.lower(VendorModel.name) == name.lower(), VendorModel.id != vendor_id)
        )
        if clash.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vendor already exists")
        data["name"] = name
    elif "name" in data:
        del data["name"]

    for field, value in data.items():
        setattr(m, field, value)

    await db.commit()
    await db.refresh(m)
    return VendorRead(**m.to_schema)


@router.delete("/{vendor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vendor(
    vendor_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    m = await _get_vendor_or_404(db, vendor_id)
    try:
        await db.delete(m)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Vendor has purchase orders; deactivate it instead")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
