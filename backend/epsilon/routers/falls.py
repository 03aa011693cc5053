"""Fall event API endpoints and the live fall channel."""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import extract_session_token, get_current_user, resolve_session_user
from ..database import async_session, get_db
from ..models import Fall, User
from ..schemas.fall import FallCreate, FallResponse, FallEnvelope, FallListResponse
from ..services.realtime import fall_channel_manager
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/falls", tags=["falls"])


@router.post("", response_model=FallEnvelope, status_code=201)
async def create_fall(
    request: FallCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a fall event and push it to the user's live subscribers."""
    fall = Fall(
        user_id=user.id,
        is_fall=int(request.is_fall),
        detected_at=request.detected_at or datetime.utcnow(),
    )
    db.add(fall)

    await retry_on_lock(db.commit)
    await db.refresh(fall)

    listeners = await fall_channel_manager.broadcast_fall_insert(fall)
    logger.info(f"Fall {fall.id} recorded for user {user.id}, delivered to {listeners} listener(s)")

    return FallEnvelope(fall=FallResponse.model_validate(fall), listeners=listeners)


@router.get("", response_model=FallListResponse)
async def list_falls(
    limit: int = Query(50, ge=1, le=500),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Recent fall events, newest first."""
    result = await db.execute(
        select(Fall)
        .where(Fall.user_id == user.id)
        .order_by(Fall.detected_at.desc())
        .limit(limit)
    )
    falls = result.scalars().all()

    return FallListResponse(falls=[FallResponse.model_validate(f) for f in falls])


@router.websocket("/ws")
async def fall_channel(websocket: WebSocket, token: Optional[str] = None):
    """Subscribe to fall inserts for the session's user.

    The session token comes from the ``token`` query parameter, a bearer
    header or the session cookie.
    """
    session_token = token or extract_session_token(
        websocket.cookies, websocket.headers.get("authorization")
    )

    user_id = None
    if session_token:
        async with async_session() as db:
            user = await resolve_session_user(db, session_token)
            if user:
                user_id = user.id

    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await fall_channel_manager.connect(user_id, websocket)
    try:
        while True:
            # Subscribers only listen; anything they send is a keepalive
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await fall_channel_manager.disconnect(user_id, websocket)
