"""Push intake for companion mode - data messages relayed by the push bridge."""
import logging
from typing import Dict

from fastapi import APIRouter, Depends, Header, HTTPException

from ..config import settings
from ..services.companion import companion_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/push", tags=["push"])


async def verify_relay_secret(x_push_secret: str | None = Header(None)):
    """Require the shared secret when one is configured."""
    if settings.push_relay_secret and x_push_secret != settings.push_relay_secret:
        logger.warning("Rejected push message with a bad relay secret")
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("")
async def receive_push(data: Dict[str, str], _: None = Depends(verify_relay_secret)):
    """Hand an FCM data payload to the companion's push receiver.

    EMERGENCY_CALL messages ring the emergency contact; other types are ignored.
    """
    handled = await companion_service.push_receiver.on_message(data)
    return {"handled": handled}
