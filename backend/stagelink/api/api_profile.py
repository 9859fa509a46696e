from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from .. import models, schemas, crud
from ..services import profiles as profile_service
from .dependencies import get_db, get_current_active_user

router = APIRouter(tags=["profiles"])

logger = logging.getLogger(__name__)


def _to_response(profile: models.Profile, user: models.User) -> schemas.ProfileResponse:
    return schemas.ProfileResponse.model_validate(profile).model_copy(
        update={"is_active": profile.id == user.active_profile_id}
    )


@router.get("/profiles", response_model=List[schemas.ProfileResponse])
def list_profiles(
    type: Optional[models.ProfileType] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    """Browse public artist, venue and audience profiles."""
    rows = crud.crud_profile.list_public_profiles(db, type=type, skip=skip, limit=limit)
    return [_to_response(p, current_user) for p in rows]


@router.post(
    "/profiles",
    response_model=schemas.ProfileResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_profile(
    profile_in: schemas.ProfileCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    profile = profile_service.create_profile(
        db,
        current_user,
        profile_in.type,
        profile_in.name,
        bio=profile_in.bio,
        location=profile_in.location,
        profile_image_url=profile_in.profile_image_url,
        visibility=profile_in.visibility,
    )
    return _to_response(profile, current_user)


@router.get("/profiles/me", response_model=List[schemas.ProfileResponse])
def read_my_profiles(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    """Every profile the user owns or is a member of."""
    profiles = profile_service.list_my_profiles(db, current_user)
    return [_to_response(p, current_user) for p in profiles]


@router.get("/profiles/active", response_model=schemas.ProfileResponse)
def read_active_profile(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    profile = profile_service.get_active_profile(db, current_user)
    return _to_response(profile, current_user)


@router.get("/profiles/{profile_id}", response_model=schemas.ProfileResponse)
def read_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    profile = profile_service.get_profile(db, profile_id)
    return _to_response(profile, current_user)


@router.post("/profiles/{profile_id}/activate", response_model=schemas.ProfileResponse)
def activate_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    """Switch which profile the user acts as."""
    profile = profile_service.activate_profile(db, current_user, profile_id)
    return _to_response(profile, current_user)


@router.delete("/profiles/{profile_id}", response_model=schemas.ProfileResponse)
def delete_profile(
    profile_id: int,
    reason: Optional[str] = Query(None, max_length=500),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    """Soft-delete; the profile can be restored during the grace period."""
    profile = profile_service.soft_delete_profile(db, current_user, profile_id, reason)
    return _to_response(profile, current_user)


@router.post("/profiles/{profile_id}/restore", response_model=schemas.ProfileResponse)
def restore_profile(
    profile_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    profile = profile_service.restore_profile(db, current_user, profile_id)
    return _to_response(profile, current_user)
