"""Medicine CRUD API endpoints."""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user
from ..database import get_db
from ..models import Medicine, MedicineLog, User
from ..schemas.medicine import (
    MedicineCreate,
    MedicineReplace,
    MedicineUpdate,
    MedicineResponse,
    MedicineEnvelope,
    MedicineListResponse,
    MedicineLogCreate,
    MedicineLogResponse,
    MedicineLogEnvelope,
    MedicineLogListResponse,
)
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/medicine", tags=["medicine"])

# Flags stored as 0/1 integers
FLAG_FIELDS = ("is_active", "reminder_enabled")


async def _get_owned_medicine(db: AsyncSession, medicine_id: str, user: User) -> Medicine:
    """Load a medicine belonging to the user or raise 404."""
    result = await db.execute(
        select(Medicine).where(Medicine.id == medicine_id, Medicine.user_id == user.id)
    )
    medicine = result.scalar_one_or_none()

    if not medicine:
        raise HTTPException(status_code=404, detail="Medicine not found")

    return medicine


def _apply_changes(medicine: Medicine, changes: dict):
    for field, value in changes.items():
        if field in FLAG_FIELDS:
            value = int(bool(value))
        setattr(medicine, field, value)
    medicine.updated_at = datetime.utcnow()


@router.get("", response_model=MedicineListResponse)
async def list_medicines(
    active_only: bool = Query(False, alias="activeOnly"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's medicines, optionally only active ones."""
    query = select(Medicine).where(Medicine.user_id == user.id)
    if active_only:
        query = query.where(Medicine.is_active == 1)

    result = await db.execute(query.order_by(Medicine.created_at))
    medicines = result.scalars().all()

    return MedicineListResponse(
        medicines=[MedicineResponse.model_validate(m) for m in medicines]
    )


@router.post("", response_model=MedicineEnvelope)
async def create_medicine(
    request: MedicineCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new medicine. Newly created medicines are always active."""
    medicine = Medicine(
        user_id=user.id,
        name=request.name,
        dosage=request.dosage,
        frequency=request.frequency,
        time=request.time,
        start_date=request.start_date,
        end_date=request.end_date,
        notes=request.notes or None,
        is_active=1,
        reminder_enabled=int(request.reminder_enabled),
    )
    db.add(medicine)

    await retry_on_lock(db.commit)
    await db.refresh(medicine)

    logger.info(f"Medicine {medicine.id} created for user {user.id}")
    return MedicineEnvelope(
        medicine=MedicineResponse.model_validate(medicine),
        message="Medicine created successfully",
    )


@router.get("/{medicine_id}", response_model=MedicineEnvelope)
async def get_medicine(
    medicine_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single medicine."""
    medicine = await _get_owned_medicine(db, medicine_id, user)
    return MedicineEnvelope(medicine=MedicineResponse.model_validate(medicine))


@router.patch("/{medicine_id}", response_model=MedicineEnvelope)
async def update_medicine(
    medicine_id: str,
    update: MedicineUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update only the fields present in the request."""
    medicine = await _get_owned_medicine(db, medicine_id, user)

    changes = update.model_dump(exclude_unset=True)
    # Required columns cannot be cleared
    for field in ("name", "dosage", "frequency", "time", "start_date", "is_active", "reminder_enabled"):
        if field in changes and changes[field] is None:
            raise HTTPException(status_code=400, detail=f"{field} cannot be null")

    _apply_changes(medicine, changes)

    await retry_on_lock(db.commit)
    await db.refresh(medicine)

    return MedicineEnvelope(
        medicine=MedicineResponse.model_validate(medicine),
        message="Medicine updated successfully",
    )


@router.put("/{medicine_id}", response_model=MedicineEnvelope)
async def replace_medicine(
    medicine_id: str,
    replacement: MedicineReplace,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace every editable field of a medicine."""
    medicine = await _get_owned_medicine(db, medicine_id, user)

    _apply_changes(medicine, replacement.model_dump())

    await retry_on_lock(db.commit)
    await db.refresh(medicine)

    return MedicineEnvelope(
        medicine=MedicineResponse.model_validate(medicine),
        message="Medicine updated successfully",
    )


@router.delete("/{medicine_id}")
async def delete_medicine(
    medicine_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a medicine and its intake log."""
    medicine = await _get_owned_medicine(db, medicine_id, user)

    await db.delete(medicine)
    await retry_on_lock(db.commit)

    logger.info(f"Medicine {medicine_id} deleted for user {user.id}")
    return {"message": "Medicine deleted successfully"}


@router.get("/{medicine_id}/logs", response_model=MedicineLogListResponse)
async def list_medicine_logs(
    medicine_id: str,
    limit: int = Query(100, ge=1, le=1000),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List intake records for a medicine, newest first."""
    await _get_owned_medicine(db, medicine_id, user)

    result = await db.execute(
        select(MedicineLog)
        .where(MedicineLog.medicine_id == medicine_id, MedicineLog.user_id == user.id)
        .order_by(MedicineLog.scheduled_for.desc())
        .limit(limit)
    )
    logs = result.scalars().all()

    return MedicineLogListResponse(logs=[MedicineLogResponse.model_validate(l) for l in logs])


@router.post("/{medicine_id}/logs", response_model=MedicineLogEnvelope)
async def create_medicine_log(
    medicine_id: str,
    request: MedicineLogCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a dose. Nothing stops two records for the same dose."""
    await _get_owned_medicine(db, medicine_id, user)

    log = MedicineLog(
        medicine_id=medicine_id,
        user_id=user.id,
        taken_at=request.taken_at or datetime.utcnow(),
        scheduled_for=request.scheduled_for,
        status=request.status.strip().lower(),
        notes=request.notes,
    )
    db.add(log)

    await retry_on_lock(db.commit)
    await db.refresh(log)

    return MedicineLogEnvelope(
        log=MedicineLogResponse.model_validate(log),
        message="Medicine log recorded",
    )
