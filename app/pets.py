"""Pet routes: owner mutations and the public nearby search."""

import logging
import math
from typing import Any, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from . import schemas, crud
from .auth import get_current_user_id
from .database import get_db
from .limits import public_rate_limit
from .search import (
    IndexSynchronizer,
    ProximitySearch,
    get_index_synchronizer,
    get_proximity_search,
)
from .storage import get_image_uploader, upload_pet_image

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pets"])

DEFAULT_RADIUS_KM = 2


@router.post("/pets", response_model=schemas.PetOut, status_code=status.HTTP_201_CREATED)
def create_pet(
    pet_in: schemas.PetCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    uploader=Depends(get_image_uploader),
    synchronizer: IndexSynchronizer = Depends(get_index_synchronizer),
):
    """
    Register a lost pet for the current user.

    The pet is stored first and then pushed to the search index. The
    response only depends on the database write.

    Args:
        pet_in (PetCreate): Pet data, optionally with a picture.
        db (Session): Database session.
        user_id (int): Authenticated owner.
        uploader: Object store for the picture.
        synchronizer (IndexSynchronizer): Index propagation.

    Returns:
        PetOut: Created pet, always ``lost``.
    """
    image_url = upload_pet_image(uploader, pet_in.image_data_uri)
    pet = crud.create_pet(
        db,
        owner_id=user_id,
        name=pet_in.name,
        location=pet_in.location,
        lat=pet_in.lat,
        lng=pet_in.lng,
        image_url=image_url,
    )
    logger.info("pet %s registered as lost by user %s", pet.id, user_id)
    synchronizer.propagate(pet)
    return pet


@router.put("/pets/{pet_id}", response_model=schemas.PetOut)
def update_pet(
    pet_id: int,
    patch: schemas.PetPatch,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    uploader=Depends(get_image_uploader),
    synchronizer: IndexSynchronizer = Depends(get_index_synchronizer),
):
    """
    Partially update a pet owned by the current user.

    Only fields present in the request are changed. Use it to mark a
    pet as ``found`` (or ``lost`` again).

    Raises:
        NotFound: If the pet does not exist.
        Forbidden: If the pet belongs to someone else.
    """
    changes = patch.changes()
    if "image_data_uri" in patch.model_fields_set:
        crud.get_owned_pet(db, pet_id, user_id)
        image_url = upload_pet_image(uploader, patch.image_data_uri)
        if image_url:
            changes["image_url"] = image_url
    pet = crud.update_pet(db, pet_id, user_id, changes)
    synchronizer.propagate(pet)
    return pet


@router.get("/my/pets", response_model=List[schemas.PetOut])
def list_my_pets(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Return the pets of the current user, newest first."""
    return crud.list_pets_by_owner(db, user_id)


@router.get(
    "/pets-near",
    response_model=List[dict[str, Any]],
    dependencies=[Depends(public_rate_limit())],
)
def pets_near(
    lat: str | None = Query(None),
    lng: str | None = Query(None),
    radius_km: str = Query(str(DEFAULT_RADIUS_KM), alias="radiusKm"),
    search: ProximitySearch = Depends(get_proximity_search),
):
    """
    Public search of lost pets around a point.

    Coordinates are taken as raw strings so that bad input is answered
    with ``400 invalid_lat_lng`` like every other invalid argument.

    Args:
        lat (str | None): Latitude.
        lng (str | None): Longitude.
        radius_km (str): Radius in kilometers, 2 by default.
        search (ProximitySearch): Index query service.

    Returns:
        list[dict]: Index hits, closest first when the index sorts so.
    """
    try:
        radius_meters = float(radius_km) * 1000
    except ValueError:
        # rejected by search_nearby once the coordinates are checked
        radius_meters = math.nan
    return search.search_nearby(lat, lng, radius_meters)
