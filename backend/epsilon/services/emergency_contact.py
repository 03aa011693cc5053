"""Locally cached emergency contact, kept in sync with the backend."""
import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from ..config import settings
from .backend_client import BackendClient

logger = logging.getLogger(__name__)

CONTACT_FILE_NAME = "emergency_contact.json"


@dataclass
class EmergencyContact:
    phone: str
    name: str = ""


class EmergencyContactStore:
    """Emergency contact preferences file under the data path.

    Calls read the local copy so they work without network; saves go to the
    file first and are then pushed to the backend.
    """

    def __init__(self, backend: Optional[BackendClient] = None, path: Optional[Path] = None):
        self.backend = backend or BackendClient()
        self.path = path or Path(settings.data_path) / CONTACT_FILE_NAME

    def get(self) -> Optional[EmergencyContact]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.error(f"Unreadable emergency contact file {self.path}: {e}")
            return None

        phone = (data.get("phone") or "").strip()
        if not phone:
            return None
        return EmergencyContact(phone=phone, name=data.get("name") or "")

    def save_local(self, contact: EmergencyContact):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(contact)))

    def clear(self):
        if self.path.exists():
            self.path.unlink()

    async def save(self, phone: str, name: str = "") -> bool:
        """Save locally, then sync. Returns whether the backend accepted it."""
        self.save_local(EmergencyContact(phone=phone, name=name))
        if not self.backend.has_session:
            logger.warning("No session token available, emergency contact saved locally only")
            return False
        return await self.backend.update_emergency_contact(phone, name)

    async def refresh(self) -> Optional[EmergencyContact]:
        """Pull the contact from the backend into the local file.

        The local copy is kept when the backend has none or is unreachable.
        """
        if not self.backend.has_session:
            return self.get()

        remote = await self.backend.get_emergency_contact()
        if remote and remote.emergency_contact_phone:
            contact = EmergencyContact(
                phone=remote.emergency_contact_phone,
                name=remote.emergency_contact_name or "",
            )
            self.save_local(contact)
            logger.info("Emergency contact refreshed from backend")
            return contact

        return self.get()
