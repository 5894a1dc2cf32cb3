"""User profile routes for the Lost Pets API."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .auth import get_current_user_id
from .database import get_db
from . import schemas, crud

router = APIRouter(tags=["users"])


@router.get("/me", response_model=schemas.UserOut)
def read_me(
    user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)
):
    """
    Retrieve the profile of the currently authenticated user.

    Args:
        user_id (int): Identifier taken from the bearer token.
        db (Session): Database session.

    Raises:
        NotFound: If the token refers to a user that no longer exists.

    Returns:
        UserOut: User profile information.
    """
    return crud.get_user(db, user_id)
