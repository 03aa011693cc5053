"""EmergencyAction model - ordered response actions."""
import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from ..database import Base

ACTION_TYPES = ("call", "message", "alarm")


class EmergencyAction(Base):
    """A response action; lower priority runs first."""

    __tablename__ = "emergency_action"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    action_type = Column(String, nullable=False)  # call, message, alarm
    action_data = Column(String, nullable=False)  # phone number, or alarm sound
    priority = Column(Integer, nullable=False, default=1)  # 1 is highest
    is_enabled = Column(Integer, default=1)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
