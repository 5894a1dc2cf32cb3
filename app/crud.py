"""CRUD operations for users, pets and sighting reports.

This module contains the record store logic, isolated from FastAPI
route handlers. The database is the source of truth; nothing here
talks to the search index.
"""

import logging
import math

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .errors import Conflict, Forbidden, Internal, InvalidArgument, NotFound

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return str(email).strip().lower()


def create_user_with_credential(
    db: Session,
    full_name: str,
    email: str,
    password_hash: str,
    phone: str | None = None,
    location: str | None = None,
) -> models.User:
    """
    Create a user and its login credential in one transaction.

    Args:
        db (Session): SQLAlchemy database session.
        full_name (str): Display name of the owner.
        email (str): Login email, compared case-insensitively.
        password_hash (str): Already hashed password.
        phone (str | None): Optional contact phone.
        location (str | None): Optional free text location.

    Raises:
        Conflict: If the email is already registered.
        Internal: If the database fails for another reason.

    Returns:
        User: Newly created user.
    """
    email = normalize_email(email)
    try:
        existing = db.execute(
            select(models.Credential.user_id).where(
                func.lower(models.Credential.email) == email
            )
        ).first()
        if existing:
            db.rollback()
            raise Conflict("email_in_use")

        user = models.User(full_name=full_name, phone=phone, location=location)
        db.add(user)
        db.flush()
        db.add(
            models.Credential(
                user_id=user.id, email=email, password_hash=password_hash
            )
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("email_in_use")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("signup transaction failed")
        raise Internal()
    db.refresh(user)
    return user


def get_credential_by_email(db: Session, email: str) -> models.Credential:
    """
    Retrieve a credential by email address.

    Raises:
        NotFound: If no credential uses the email.
    """
    credential = db.execute(
        select(models.Credential).where(
            func.lower(models.Credential.email) == normalize_email(email)
        )
    ).scalar_one_or_none()
    if credential is None:
        raise NotFound("credential_not_found")
    return credential


def get_user(db: Session, user_id: int) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise NotFound("user_not_found")
    return user


def count_users(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(models.User))


def _check_coordinates(lat, lng):
    if (lat is None) != (lng is None):
        raise InvalidArgument("invalid_lat_lng")
    for value in (lat, lng):
        if value is not None and not math.isfinite(float(value)):
            raise InvalidArgument("invalid_lat_lng")


def create_pet(
    db: Session,
    owner_id: int,
    name: str,
    location: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
    image_url: str | None = None,
) -> models.Pet:
    """
    Register a new pet as lost.

    Args:
        db (Session): Database session.
        owner_id (int): Identifier of the owning user.
        name (str): Display name of the pet.
        location (str | None): Free text location.
        lat (float | None): Latitude, set together with ``lng``.
        lng (float | None): Longitude, set together with ``lat``.
        image_url (str | None): Public picture URL.

    Raises:
        InvalidArgument: If only one coordinate is given.

    Returns:
        Pet: The persisted pet with its id and creation time.
    """
    _check_coordinates(lat, lng)
    pet = models.Pet(
        user_id=owner_id,
        name=name,
        location=location,
        lat=float(lat) if lat is not None else None,
        lng=float(lng) if lng is not None else None,
        image_url=image_url,
        status=models.PetStatus.LOST.value,
    )
    db.add(pet)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("creating pet for user %s failed", owner_id)
        raise Internal()
    db.refresh(pet)
    return pet


def get_owned_pet(
    db: Session, pet_id: int, caller_id: int, for_update: bool = False
) -> models.Pet:
    """
    Resolve a pet and check that the caller owns it.

    Raises:
        NotFound: If the pet does not exist.
        Forbidden: If the caller is not the owner.
    """
    stmt = select(models.Pet).where(models.Pet.id == pet_id)
    if for_update:
        stmt = stmt.with_for_update()
    pet = db.execute(stmt).scalar_one_or_none()
    if pet is None:
        raise NotFound("not_found")
    if pet.user_id != caller_id:
        raise Forbidden("forbidden")
    return pet


def update_pet(
    db: Session, pet_id: int, caller_id: int, changes: dict
) -> models.Pet:
    """
    Apply a partial update to a pet owned by the caller.

    Keys present in ``changes`` overwrite the stored values, missing
    keys are left alone. Ownership is checked before anything is
    written.

    Args:
        db (Session): Database session.
        pet_id (int): Pet identifier.
        caller_id (int): Identifier of the authenticated user.
        changes (dict): Column values to set.

    Raises:
        NotFound: If the pet does not exist.
        Forbidden: If the caller is not the owner.

    Returns:
        Pet: The full updated pet.
    """
    pet = get_owned_pet(db, pet_id, caller_id, for_update=True)

    lat = changes.get("lat", pet.lat)
    lng = changes.get("lng", pet.lng)
    if (lat is None) != (lng is None):
        db.rollback()
        raise InvalidArgument("invalid_lat_lng")
    if changes.get("status", pet.status) not in {s.value for s in models.PetStatus}:
        db.rollback()
        raise InvalidArgument("invalid_status")

    for key, value in changes.items():
        setattr(pet, key, value)

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("updating pet %s failed", pet_id)
        raise Internal()
    db.refresh(pet)
    return pet


def list_pets_by_owner(db: Session, owner_id: int) -> list[models.Pet]:
    """
    Retrieve the pets of a user, most recently created first.
    """
    return db.scalars(
        select(models.Pet)
        .where(models.Pet.user_id == owner_id)
        .order_by(models.Pet.created_at.desc(), models.Pet.id.desc())
    ).all()


def create_report(
    db: Session,
    pet_id: int,
    reporter_name: str,
    reporter_phone: str,
    location: str | None = None,
    details: str | None = None,
) -> tuple[models.Report, str, str]:
    """
    Persist a sighting report and resolve who must be told about it.

    Args:
        db (Session): Database session.
        pet_id (int): Reported pet.
        reporter_name (str): Name of the person reporting.
        reporter_phone (str): Phone of the person reporting.
        location (str | None): Where the pet was seen.
        details (str | None): Free text details.

    Raises:
        NotFound: If the pet does not exist. No report is stored.

    Returns:
        tuple: The persisted report, the pet name and the owner email.
    """
    row = db.execute(
        select(models.Pet.name, models.Credential.email)
        .join(models.Credential, models.Credential.user_id == models.Pet.user_id)
        .where(models.Pet.id == pet_id)
    ).first()
    if row is None:
        raise NotFound("pet_not_found")
    pet_name, owner_email = row

    report = models.Report(
        pet_id=pet_id,
        reporter_name=reporter_name,
        reporter_phone=reporter_phone,
        location=location,
        details=details,
    )
    db.add(report)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("storing report for pet %s failed", pet_id)
        raise Internal()
    db.refresh(report)
    return report, pet_name, owner_email


def list_reports_for_pet(db: Session, pet_id: int) -> list[models.Report]:
    return db.scalars(
        select(models.Report)
        .where(models.Report.pet_id == pet_id)
        .order_by(models.Report.created_at.desc(), models.Report.id.desc())
    ).all()
