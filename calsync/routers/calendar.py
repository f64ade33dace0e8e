# calsync/routers/calendar.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from calsync.base.database import get_db
from calsync.base.models import AvailableSlotsResponse
from calsync.base.security import get_current_user_id
from calsync.models.user_model import UserModel
from calsync.services import AvailabilityService
from calsync.utils.time_utils import parse_date

router = APIRouter(tags=["Calendar"])


def get_availability_service() -> AvailabilityService:
    return AvailabilityService()


@router.get("/available-slots", response_model=AvailableSlotsResponse)
def available_slots(
    date: Optional[str] = Query(None, description="Day to check, YYYY-MM-DD"),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Free one-hour slots between 09:00 and 17:00 on `date`, after removing
    everything busy on the organizer's connected calendars.
    """
    if not date:
        raise HTTPException(status_code=400, detail="Date parameter required")
    try:
        day = parse_date(date)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")

    user = db.get(UserModel, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    return AvailableSlotsResponse(available_slots=service.available_slots(user, day))
