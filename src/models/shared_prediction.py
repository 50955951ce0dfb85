# src/models/shared_prediction.py
import uuid
from enum import Enum as PyEnum
from sqlalchemy import (
    Column,
    ForeignKey,
    DateTime,
    Text,
    String,
    Boolean,
    Enum,
    JSON,
    Index,
    Uuid,
    text,
)
from sqlalchemy.orm import relationship
from db.database import Base
from .user import utc_now


class ShareStatus(str, PyEnum):
    PENDING = "pending"
    VIEWED = "viewed"
    RESPONDED = "responded"
    REVOKED = "revoked"


class SharedPrediction(Base):
    __tablename__ = "shared_predictions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Sharing details
    prediction_id = Column(Uuid, ForeignKey("predictions.id"), nullable=False)
    patient_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    share_code = Column(String(32), nullable=False, unique=True, index=True)
    message = Column(String(500), nullable=True)

    status = Column(
        Enum(ShareStatus, values_callable=lambda enum: [e.value for e in enum]),
        nullable=False,
        default=ShareStatus.PENDING,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    # Doctor response
    response_message = Column(Text, nullable=True)
    response_recommendations = Column(JSON, nullable=True)
    follow_up_required = Column(Boolean, nullable=False, default=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    # Lifecycle
    expires_at = Column(DateTime(timezone=True), nullable=False)
    viewed_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    prediction = relationship("Prediction", back_populates="shares")
    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])

    __table_args__ = (
        # At most one active share per prediction and doctor
        Index(
            "uq_shared_predictions_active_pair",
            "prediction_id",
            "doctor_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index("ix_shared_predictions_doctor_created", "doctor_id", "created_at"),
    )

    @property
    def doctor_response(self):
        """Response block, or None until the doctor has responded"""
        if self.responded_at is None:
            return None
        return {
            "message": self.response_message,
            "recommendations": self.response_recommendations or [],
            "follow_up_required": self.follow_up_required,
            "responded_at": self.responded_at,
        }
