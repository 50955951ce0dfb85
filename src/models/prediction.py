# src/models/prediction.py
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
    Float,
    Integer,
    JSON,
    Index,
    Uuid,
)
from sqlalchemy.orm import relationship
from db.database import Base
from .user import utc_now


class RiskLevel(str, PyEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Prediction(Base):
    __tablename__ = "predictions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    # Inputs
    symptoms = Column(JSON, nullable=False, default=list)
    clinical_inputs = Column(JSON, nullable=False, default=dict)

    # Result
    prediction = Column(String(255), nullable=False)
    result_class = Column(Integer, nullable=False)
    confidence = Column(Float, nullable=False)
    risk_level = Column(
        Enum(RiskLevel, values_callable=lambda enum: [e.value for e in enum]),
        nullable=False,
        default=RiskLevel.LOW,
    )
    recommendations = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)

    # Raw payload returned by the model service
    model_response = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    is_deleted = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # Relationships
    user = relationship("User", back_populates="predictions")
    shares = relationship("SharedPrediction", back_populates="prediction")

    __table_args__ = (Index("ix_predictions_user_created", "user_id", "created_at"),)
