# calsync/models/slot_model.py

from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey

from calsync.base.database import Base

# per-provider outcome of booking the tentative event
PROVIDER_PENDING = "pending"
PROVIDER_BOOKED = "booked"
PROVIDER_FAILED = "failed"
PROVIDER_NOT_CONNECTED = "not_connected"


class SlotModel(Base):
    __tablename__ = "slots"

    id = Column(Integer, primary_key=True, index=True)
    meeting_id = Column(Integer, ForeignKey("meetings.id"), nullable=False, index=True)
    slot_time = Column(DateTime, nullable=False)
    google_event_id = Column(String(255), nullable=True)
    outlook_event_id = Column(String(255), nullable=True)
    google_status = Column(String(32), default=PROVIDER_PENDING, nullable=False)
    outlook_status = Column(String(32), default=PROVIDER_PENDING, nullable=False)
    is_selected = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
