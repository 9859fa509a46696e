from typing import List
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..services import booking_requests as booking_service
from .dependencies import get_db, get_current_active_profile

router = APIRouter(tags=["booking-requests"])

logger = logging.getLogger(__name__)


@router.post(
    "/booking-requests",
    response_model=schemas.BookingRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_booking_request(
    request_in: schemas.BookingRequestCreate,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    """Send a booking inquiry from the active artist profile to a venue."""
    return booking_service.create_booking_request(
        db,
        acting_profile_id=profile.id,
        venue_profile_id=request_in.venue_id,
        event_date=request_in.event_date,
        event_time=request_in.event_time,
        budget=request_in.budget,
        requirements=request_in.requirements,
        message=request_in.message,
    )


@router.get("/booking-requests", response_model=List[schemas.BookingRequestListItem])
def read_my_booking_requests(
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    """Requests sent by the active artist, or received by the active venue."""
    items = booking_service.list_for_profile(db, profile.id)
    return [
        schemas.BookingRequestListItem.model_validate(item["booking_request"]).model_copy(
            update={
                "counterpart": (
                    schemas.ProfileSummary.model_validate(item["counterpart"])
                    if item["counterpart"] is not None
                    else None
                )
            }
        )
        for item in items
    ]


@router.get("/booking-requests/{request_id}", response_model=schemas.BookingRequestResponse)
def read_booking_request(
    request_id: int,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    return booking_service.get_booking_request(db, request_id, profile.id)


@router.patch("/booking-requests/{request_id}", response_model=schemas.BookingRequestResponse)
def update_booking_request_status(
    request_id: int,
    update_in: schemas.BookingRequestStatusUpdate,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    """Accept or reject a pending request as the addressed venue."""
    return booking_service.update_status(
        db,
        request_id,
        update_in.status,
        acting_profile_id=profile.id,
        decline_message=update_in.decline_message,
    )
