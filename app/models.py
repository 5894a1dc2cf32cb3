"""Database models for the Lost Pets API.

This module defines the SQLAlchemy ORM models of the record store:
users, their login credentials, pets and sighting reports.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PetStatus(str, enum.Enum):
    """Lifecycle state of a pet."""

    LOST = "lost"
    FOUND = "found"


class User(Base):
    """
    SQLAlchemy model representing a registered owner.

    A user owns zero or more pets and has exactly one credential.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    credential = relationship(
        "Credential",
        back_populates="user",
        uselist=False,
    )

    #: Pets registered by the user
    pets = relationship("Pet", back_populates="owner")


class Credential(Base):
    """
    Login credential of a user.

    The email is stored lower-cased, so the unique constraint is
    effectively case-insensitive.
    """

    __tablename__ = "auth"

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    user = relationship("User", back_populates="credential")


class Pet(Base):
    """
    SQLAlchemy model representing a pet record.

    Coordinates are either both set or both empty. Pets are created
    ``lost`` and are never hard-deleted.
    """

    __tablename__ = "pets"
    __table_args__ = (
        CheckConstraint(
            "(lat IS NULL AND lng IS NULL) OR (lat IS NOT NULL AND lng IS NOT NULL)",
            name="ck_pets_lat_lng_pair",
        ),
        CheckConstraint("status IN ('lost', 'found')", name="ck_pets_status"),
    )

    id = Column(Integer, primary_key=True, index=True)

    #: Identifier of the owning user
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(120), nullable=False)
    location = Column(String(255), nullable=True)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    image_url = Column(String(500), nullable=True)
    status = Column(String(10), default=PetStatus.LOST.value, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    owner = relationship("User", back_populates="pets")
    reports = relationship("Report", back_populates="pet")


class Report(Base):
    """
    A public sighting report about a pet.

    Reports are immutable and live only in the record store.
    """

    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    pet_id = Column(
        Integer,
        ForeignKey("pets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reporter_name = Column(String(200), nullable=False)
    reporter_phone = Column(String(50), nullable=False)
    location = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    pet = relationship("Pet", back_populates="reports")
