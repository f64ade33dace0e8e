# calsync/models/meeting_model.py

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey

from calsync.base.database import Base

STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"

# progress of the post-create calendar booking task
BOOKING_QUEUED = "queued"
BOOKING_IN_PROGRESS = "in_progress"
BOOKING_DONE = "done"


class MeetingModel(Base):
    __tablename__ = "meetings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    attendee_email = Column(String(255), nullable=False)
    attendee_name = Column(String(255), nullable=True)
    unique_link = Column(String(255), unique=True, nullable=False)
    selected_slot = Column(DateTime, nullable=True)
    status = Column(String(50), default=STATUS_PENDING, nullable=False)
    booking_status = Column(String(50), default=BOOKING_QUEUED, nullable=False)
    booking_started_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
