# src/schemas/email_schemas.py
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, EmailStr, field_validator


class EmailType(str, Enum):
    OTP_VERIFICATION = "otp_verification"
    WELCOME = "welcome"
    PASSWORD_RESET = "password_reset"
    PREDICTION_SHARED = "prediction_shared"
    DOCTOR_RESPONSE = "doctor_response"


class EmailMessage(BaseModel):
    """Rendered email ready for delivery"""

    to: List[EmailStr]
    subject: str
    html: str
    text: Optional[str] = None

    @field_validator("to")
    @classmethod
    def validate_recipients(cls, v):
        if not v:
            raise ValueError("At least one recipient is required")
        return v


class EmailResponse(BaseModel):
    """Email response schema"""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    recipients: List[EmailStr]
