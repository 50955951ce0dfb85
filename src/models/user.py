# src/models/user.py
import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import Column, String, DateTime, Boolean, Enum, Integer, Uuid
from sqlalchemy.orm import relationship
from db.database import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, PyEnum):
    USER = "user"
    DOCTOR = "doctor"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Account information
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, values_callable=lambda enum: [e.value for e in enum]),
        nullable=False,
        default=UserRole.USER,
    )

    # Doctor-specific fields
    specialization = Column(String(100), nullable=True)
    license_number = Column(String(50), nullable=True, unique=True)
    experience = Column(Integer, nullable=True)

    # Verification
    is_verified = Column(Boolean, nullable=False, default=False)
    otp_hash = Column(String(64), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Credentials at rest are SHA-256 digests
    refresh_token_hash = Column(String(64), nullable=True)
    reset_password_token_hash = Column(String(64), nullable=True, index=True)
    reset_password_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    predictions = relationship("Prediction", back_populates="user")

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"
