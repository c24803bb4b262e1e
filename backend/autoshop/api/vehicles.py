"""Vehicle endpoints. Customers manage their own cars; staff can look any of them up."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from autoshop.database import get_db
from autoshop.models.appointment import Appointment
from autoshop.models.project import Project
from autoshop.models.user import User, UserRole
from autoshop.models.vehicle import Vehicle
from autoshop.schemas.vehicle import VehicleCreate, VehicleListResponse, VehicleRead, VehicleUpdate
from autoshop.utils.logging import get_logger
from autoshop.utils.security import get_current_user, require_role

router = APIRouter()
logger = get_logger("api.vehicles")

require_owner_or_admin = require_role(UserRole.ADMIN, UserRole.CUSTOMER)


async def _vehicle_or_404(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if vehicle is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vehicle not found")
    return vehicle


def _ensure_owner(vehicle: Vehicle, user: User, staff_may_view: bool = False) -> None:
    if user.is_admin or vehicle.customer_id == user.id:
        return
    if staff_may_view and user.is_employee:
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this vehicle")


async def _ensure_vin_free(db: AsyncSession, vin: str, vehicle_id: Optional[int] = None) -> None:
    query = select(Vehicle.id).where(Vehicle.vin == vin)
    if vehicle_id is not None:
        query = query.where(Vehicle.id != vehicle_id)
    if (await db.execute(query)).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="VIN already registered")


async def _list(db: AsyncSession, customer_id: Optional[int]) -> VehicleListResponse:
    query = select(Vehicle)
    if customer_id is not None:
        query = query.where(Vehicle.customer_id == customer_id)
    vehicles = (await db.execute(query.order_by(Vehicle.id))).scalars().all()
    return VehicleListResponse(
        vehicles=[VehicleRead.model_validate(vehicle) for vehicle in vehicles],
        total=len(vehicles),
    )


@router.get("/", response_model=VehicleListResponse)
async def list_vehicles(
    customer_id: Optional[int] = Query(None, alias="customerId"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VehicleListResponse:
    """Staff see every vehicle, optionally for one customer; customers see their own."""
    if current_user.is_customer:
        customer_id = current_user.id
    return await _list(db, customer_id)


@router.get("/my-vehicles", response_model=VehicleListResponse)
async def my_vehicles(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> VehicleListResponse:
    return await _list(db, current_user.id)


@router.get("/{vehicle_id}", response_model=VehicleRead)
async def get_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Vehicle:
    vehicle = await _vehicle_or_404(db, vehicle_id)
    _ensure_owner(vehicle, current_user, staff_may_view=True)
    return vehicle


@router.post("/", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    request: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_owner_or_admin),
) -> Vehicle:
    """Register a vehicle. Admins must name the customer who owns it."""
    if current_user.is_customer:
        owner_id = current_user.id
    else:
        if request.customer_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="customerId is required")
        owner = await db.get(User, request.customer_id)
        if owner is None or not owner.is_customer:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Owner must be a customer account")
        owner_id = owner.id

    await _ensure_vin_free(db, request.vin)
    vehicle = Vehicle(customer_id=owner_id, **request.model_dump(exclude={"customer_id"}))
    db.add(vehicle)
    await db.flush()
    await db.refresh(vehicle)
    logger.info("vehicle_registered", vehicle_id=vehicle.id, customer_id=owner_id, by=current_user.id)
    return vehicle


@router.patch("/{vehicle_id}", response_model=VehicleRead)
async def update_vehicle(
    vehicle_id: int,
    request: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_owner_or_admin),
) -> Vehicle:
    vehicle = await _vehicle_or_404(db, vehicle_id)
    _ensure_owner(vehicle, current_user)

    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if "vin" in changes:
        await _ensure_vin_free(db, changes["vin"], vehicle_id=vehicle.id)
    for field, value in changes.items():
        setattr(vehicle, field, value)
    await db.flush()
    await db.refresh(vehicle)
    logger.info("vehicle_updated", vehicle_id=vehicle.id, fields=sorted(changes))
    return vehicle


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_owner_or_admin),
) -> None:
    """Remove a vehicle that has never been booked in."""
    vehicle = await _vehicle_or_404(db, vehicle_id)
    _ensure_owner(vehicle, current_user)

    history = 0
    for model in (Appointment, Project):
        history += (
            await db.execute(select(func.count()).select_from(model).where(model.vehicle_id == vehicle.id))
        ).scalar() or 0
    if history:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Vehicle has appointments or projects and cannot be removed",
        )

    await db.delete(vehicle)
    await db.flush()
    logger.info("vehicle_removed", vehicle_id=vehicle_id, by=current_user.id)
