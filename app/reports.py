"""Sighting report routes for the Lost Pets API."""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from . import schemas, crud
from .auth import get_current_user_id
from .database import get_db
from .limits import public_rate_limit
from .notifications import dispatch_report_notification, get_notification_channel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reports"])


@router.post(
    "/reports",
    response_model=schemas.ReportOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(public_rate_limit())],
)
async def submit_report(
    report_in: schemas.ReportCreate,
    db: Session = Depends(get_db),
    channel=Depends(get_notification_channel),
):
    """
    Store a public sighting report and email the pet owner.

    The report is committed before the email is attempted. A failed
    delivery is logged and does not change the response.

    Args:
        report_in (ReportCreate): Sighting details.
        db (Session): Database session.
        channel: Notification channel.

    Raises:
        NotFound: If the pet does not exist.

    Returns:
        ReportOut: The stored report.
    """
    report, pet_name, owner_email = crud.create_report(
        db,
        pet_id=report_in.pet_id,
        reporter_name=report_in.reporter_name,
        reporter_phone=report_in.reporter_phone,
        location=report_in.location,
        details=report_in.details,
    )
    delivered = await dispatch_report_notification(
        channel,
        owner_email,
        pet_name=pet_name,
        reporter_name=report.reporter_name,
        reporter_phone=report.reporter_phone,
        location=report.location,
        details=report.details,
    )
    if not delivered:
        logger.warning("report %s stored without owner notification", report.id)
    return report


@router.get("/my/pets/{pet_id}/reports", response_model=List[schemas.ReportOut])
def list_pet_reports(
    pet_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Return the sightings reported for one of the current user's pets."""
    crud.get_owned_pet(db, pet_id, user_id)
    return crud.list_reports_for_pet(db, pet_id)
