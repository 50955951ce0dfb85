# src/schemas/user_schemas.py
from abc import abstractmethod
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID
from pydantic import (
    Discriminator,
    EmailStr,
    Field,
    RootModel,
    Tag,
    field_validator,
    model_validator,
)
from models.user import User, UserRole
from .base_schemas import BaseSchema, RequestSchema
from .profile_schemas import (
    DoctorProfile,
    PatientProfile,
    ProfileBase,
    UserProfile,
    profile_for,
)

MIN_PASSWORD_LENGTH = 6


class EmailRequest(RequestSchema):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def normalise_email(cls, v: str) -> str:
        return v.lower()


class RegisterBase(EmailRequest):
    """Fields shared by every registration variant"""

    username: str = Field(..., min_length=3, max_length=30)
    full_name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)

    @field_validator("username")
    @classmethod
    def normalise_username(cls, v: str) -> str:
        return v.lower()

    @abstractmethod
    def to_profile(self) -> ProfileBase:
        """Build the role-specific profile created alongside the user."""


class PatientRegister(RegisterBase):
    role: Literal["user"] = "user"

    def to_profile(self) -> ProfileBase:
        return PatientProfile()


class DoctorRegister(RegisterBase):
    role: Literal["doctor"]
    specialization: str = Field(..., min_length=2, max_length=100)
    license_number: str = Field(..., min_length=3, max_length=50)
    experience: int = Field(..., ge=0, le=80)

    def to_profile(self) -> ProfileBase:
        return DoctorProfile(
            specialization=self.specialization,
            license_number=self.license_number,
            experience=self.experience,
        )


def _registration_role(value: Any) -> Optional[str]:
    # Missing role means a patient account
    if isinstance(value, dict):
        return value.get("role") or UserRole.USER.value
    return getattr(value, "role", UserRole.USER.value)


class UserRegister(
    RootModel[
        Annotated[
            Union[
                Annotated[PatientRegister, Tag("user")],
                Annotated[DoctorRegister, Tag("doctor")],
            ],
            Discriminator(
                _registration_role,
                custom_error_type="invalid_role",
                custom_error_message="Invalid role. Must be 'user' or 'doctor'",
            ),
        ]
    ]
):
    """Registration body, dispatched on its role"""


class VerifyOtpRequest(EmailRequest):
    otp: str = Field(..., min_length=4, max_length=10)


class LoginRequest(RequestSchema):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identifier(self) -> "LoginRequest":
        if not self.username and not self.email:
            raise ValueError("Username or email is required")
        return self

    @property
    def identifier(self) -> str:
        return (self.email or self.username or "").lower()


class ResetPasswordRequest(RequestSchema):
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class RefreshTokenRequest(RequestSchema):
    refresh_token: Optional[str] = None


class UserPublic(BaseSchema):
    """Public user schema (for responses)"""

    id: UUID
    username: str
    email: EmailStr
    full_name: str
    role: UserRole
    is_verified: bool
    specialization: Optional[str] = None
    license_number: Optional[str] = None
    experience: Optional[int] = None
    profile: Optional[UserProfile] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        public = cls.model_validate(user)
        public.profile = profile_for(user)
        return public


class UserSummary(BaseSchema):
    """Compact user reference embedded in share records"""

    id: UUID
    username: str
    email: EmailStr
    full_name: str
    specialization: Optional[str] = None


class AuthData(BaseSchema):
    user: UserPublic
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenPair(BaseSchema):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RegistrationData(BaseSchema):
    user: UserPublic


class DashboardData(BaseSchema):
    message: str
    user: UserPublic
