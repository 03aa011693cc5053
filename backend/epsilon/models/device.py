"""Device model - one row per registered phone/push token."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint

from ..database import Base


class Device(Base):
    """Registered device for push notifications. Token is the FCM identifier."""

    __tablename__ = "device"
    __table_args__ = (
        UniqueConstraint("user_id", "device_token", name="uq_device_user_token"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    device_name = Column(String, nullable=False)
    device_token = Column(String, nullable=False)
    device_model = Column(String, nullable=True)
    os_version = Column(String, nullable=True)
    app_version = Column(String, nullable=True)
    last_active_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
