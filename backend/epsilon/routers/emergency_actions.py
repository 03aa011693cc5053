"""Emergency action CRUD API endpoints."""
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user
from ..database import get_db
from ..models import EmergencyAction, User
from ..schemas.emergency_action import (
    EmergencyActionCreate,
    EmergencyActionUpdate,
    EmergencyActionResponse,
    EmergencyActionEnvelope,
    EmergencyActionListResponse,
)
from ..utils.db_utils import retry_on_lock

router = APIRouter(prefix="/api/emergency-action", tags=["emergency-action"])


async def _get_owned_action(db: AsyncSession, action_id: str, user: User) -> EmergencyAction:
    result = await db.execute(
        select(EmergencyAction).where(
            EmergencyAction.id == action_id,
            EmergencyAction.user_id == user.id,
        )
    )
    action = result.scalar_one_or_none()

    if not action:
        raise HTTPException(status_code=404, detail="Emergency action not found")

    return action


@router.get("", response_model=EmergencyActionListResponse)
async def list_actions(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List emergency actions in the order they should run (priority 1 first)."""
    result = await db.execute(
        select(EmergencyAction)
        .where(EmergencyAction.user_id == user.id)
        .order_by(EmergencyAction.priority.asc(), EmergencyAction.created_at.asc())
    )
    actions = result.scalars().all()

    return EmergencyActionListResponse(
        actions=[EmergencyActionResponse.model_validate(a) for a in actions]
    )


@router.post("", response_model=EmergencyActionEnvelope)
async def create_action(
    request: EmergencyActionCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new emergency action."""
    action = EmergencyAction(
        user_id=user.id,
        action_type=request.action_type,
        action_data=request.action_data,
        priority=request.priority,
        is_enabled=int(request.is_enabled),
    )
    db.add(action)

    await retry_on_lock(db.commit)
    await db.refresh(action)

    return EmergencyActionEnvelope(
        action=EmergencyActionResponse.model_validate(action),
        message="Emergency action created successfully",
    )


@router.get("/{action_id}", response_model=EmergencyActionEnvelope)
async def get_action(
    action_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single emergency action."""
    action = await _get_owned_action(db, action_id, user)
    return EmergencyActionEnvelope(action=EmergencyActionResponse.model_validate(action))


@router.patch("/{action_id}", response_model=EmergencyActionEnvelope)
async def update_action(
    action_id: str,
    update: EmergencyActionUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update an emergency action."""
    action = await _get_owned_action(db, action_id, user)

    if update.action_type is not None:
        action.action_type = update.action_type
    if update.action_data is not None:
        action.action_data = update.action_data
    if update.priority is not None:
        action.priority = update.priority
    if update.is_enabled is not None:
        action.is_enabled = int(update.is_enabled)
    action.updated_at = datetime.utcnow()

    await retry_on_lock(db.commit)
    await db.refresh(action)

    return EmergencyActionEnvelope(
        action=EmergencyActionResponse.model_validate(action),
        message="Emergency action updated successfully",
    )


@router.delete("/{action_id}")
async def delete_action(
    action_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete an emergency action."""
    action = await _get_owned_action(db, action_id, user)

    await db.delete(action)
    await retry_on_lock(db.commit)

    return {"message": "Emergency action deleted successfully"}
