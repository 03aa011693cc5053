"""Fall model - events reported by the wearable."""
import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from ..database import Base


class Fall(Base):
    """A fall-detection event."""

    __tablename__ = "falls"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    is_fall = Column(Integer, nullable=False, default=1)
    detected_at = Column(DateTime, default=datetime.utcnow, nullable=False)
