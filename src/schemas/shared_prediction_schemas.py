# src/schemas/shared_prediction_schemas.py
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID
from pydantic import AliasChoices, EmailStr, Field, field_validator
from models.shared_prediction import ShareStatus
from .base_schemas import BaseSchema, RequestSchema, TimestampMixin, IDMixin
from .prediction_schemas import PredictionSummary
from .user_schemas import UserSummary

ReceivedStatusFilter = Literal[
    "active", "all", "pending", "viewed", "responded", "revoked"
]


class ShareCreate(RequestSchema):
    """Schema for sharing a prediction with a doctor"""

    prediction_id: UUID
    doctor_email: EmailStr
    message: Optional[str] = Field(None, max_length=500)

    @field_validator("doctor_email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.lower()


class DoctorResponseCreate(RequestSchema):
    """Doctor's reply to a shared prediction"""

    message: str = Field(
        ...,
        max_length=5000,
        validation_alias=AliasChoices("message", "response"),
    )
    recommendations: List[str] = Field(default_factory=list)
    follow_up_required: bool = False


class DoctorResponsePublic(BaseSchema):
    message: Optional[str] = None
    recommendations: List[str] = []
    follow_up_required: bool = False
    responded_at: Optional[datetime] = None


class SharedPredictionPublic(IDMixin, TimestampMixin):
    """Share record as seen by its patient or doctor"""

    share_code: str
    prediction_id: UUID
    patient_id: UUID
    doctor_id: UUID
    message: Optional[str] = None
    status: ShareStatus
    is_active: bool
    expires_at: datetime
    viewed_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    doctor_response: Optional[DoctorResponsePublic] = None
    prediction: Optional[PredictionSummary] = None
    patient: Optional[UserSummary] = None
    doctor: Optional[UserSummary] = None
