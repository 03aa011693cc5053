"""MedicineLog model - append-only record of doses."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


class MedicineLog(Base):
    """Record of a dose being taken, missed or skipped."""

    __tablename__ = "medicine_log"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    medicine_id = Column(String, ForeignKey("medicine.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    taken_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    scheduled_for = Column(DateTime, nullable=False)
    status = Column(String, nullable=False)  # taken, missed, skipped (not enforced)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    medicine = relationship("Medicine", back_populates="logs")
