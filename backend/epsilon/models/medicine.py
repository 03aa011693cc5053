"""Medicine model - medication schedules."""
import uuid
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


class Medicine(Base):
    """A medication with one or more daily dose times."""

    __tablename__ = "medicine"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    dosage = Column(String, nullable=False)
    frequency = Column(String, nullable=False)  # daily, twice daily, weekly
    time = Column(String, nullable=False)  # "08:00" or "14:00,20:00"
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    notes = Column(String, nullable=True)
    is_active = Column(Integer, default=1)  # 0 or 1
    reminder_enabled = Column(Integer, default=1)  # 0 or 1
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    logs = relationship("MedicineLog", back_populates="medicine", cascade="all, delete-orphan", passive_deletes=True)
