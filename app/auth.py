"""Authentication routes and the bearer token identity gate."""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError
from sqlalchemy.orm import Session

from . import schemas, crud
from .core import get_settings
from .database import get_db
from .errors import NotFound, Unauthorized

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)
router = APIRouter(prefix="/auth", tags=["auth"])


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compare a plain password with its hashed value."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Generate a password hash using the configured context."""
    return pwd_context.hash(password)


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT carrying the user id, valid for 7 days by default."""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(user_id), "exp": expire, "scope": "access"}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int:
    """
    Verify a bearer token and return the user id it was issued for.

    Args:
        token (str): Encoded JWT.

    Raises:
        Unauthorized: If the token is malformed, expired, signed with
            another key or not an access token.

    Returns:
        int: Identifier of the authenticated user.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require_exp": True, "require_sub": True},
        )
        token_data = schemas.TokenData(**payload)
    except (JWTError, ValidationError):
        raise Unauthorized("invalid_token")
    if token_data.scope != "access" or not token_data.sub:
        raise Unauthorized("invalid_token")
    try:
        return int(token_data.sub)
    except ValueError:
        raise Unauthorized("invalid_token")


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> int:
    """Dependency resolving the ``Authorization: Bearer`` header to a user id."""

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("missing_token")
    if not credentials.credentials:
        raise Unauthorized("missing_token")
    return decode_access_token(credentials.credentials)


@router.post(
    "/signup", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED
)
def signup(user_in: schemas.UserCreate, db: Session = Depends(get_db)):
    """Register a new owner together with their credential."""

    hashed_password = get_password_hash(user_in.password)
    user = crud.create_user_with_credential(
        db,
        full_name=user_in.full_name,
        email=user_in.email,
        password_hash=hashed_password,
        phone=user_in.phone,
        location=user_in.location,
    )
    logger.info("user %s signed up", user.id)
    return user


@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    """Authenticate an owner and return a bearer token."""

    try:
        credential = crud.get_credential_by_email(db, payload.email)
    except NotFound:
        raise Unauthorized("invalid_credentials")
    if not verify_password(payload.password, credential.password_hash):
        raise Unauthorized("invalid_credentials")
    return schemas.Token(access_token=create_access_token(credential.user_id))
