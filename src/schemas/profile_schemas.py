# src/schemas/profile_schemas.py
from typing import Annotated, ClassVar, Dict, Literal, Type, Union
from pydantic import Field
from models.user import User, UserRole
from .base_schemas import BaseSchema


class ProfileBase(BaseSchema):
    """
    Role-specific view of a user.

    Behaviour that differs between roles (how the user is addressed, what
    they are told after registering, what the welcome email says) lives on
    the variant instead of being branched on the role string.
    """

    label: ClassVar[str] = "User"
    welcome_intro: ClassVar[str] = (
        "You can now record predictions and share them with verified doctors."
    )
    dashboard_path: ClassVar[str] = "/dashboard"

    def display_name(self, full_name: str) -> str:
        return full_name

    @property
    def registration_message(self) -> str:
        return (
            f"{self.label} registered successfully. "
            "Please check your email for OTP verification."
        )


class PatientProfile(ProfileBase):
    role: Literal["user"] = "user"


class DoctorProfile(ProfileBase):
    role: Literal["doctor"] = "doctor"
    specialization: str
    license_number: str
    experience: int = Field(..., ge=0)

    label: ClassVar[str] = "Doctor"
    welcome_intro: ClassVar[str] = (
        "Patients can now share their predictions with you for review."
    )
    dashboard_path: ClassVar[str] = "/doctor/dashboard"

    def display_name(self, full_name: str) -> str:
        return f"Dr. {full_name}"


class AdminProfile(ProfileBase):
    role: Literal["admin"] = "admin"

    label: ClassVar[str] = "Admin"
    welcome_intro: ClassVar[str] = "You have administrator access to the platform."
    dashboard_path: ClassVar[str] = "/admin/dashboard"


UserProfile = Annotated[
    Union[PatientProfile, DoctorProfile, AdminProfile],
    Field(discriminator="role"),
]

PROFILE_TYPES: Dict[UserRole, Type[ProfileBase]] = {
    UserRole.USER: PatientProfile,
    UserRole.DOCTOR: DoctorProfile,
    UserRole.ADMIN: AdminProfile,
}


def profile_for(user: User) -> ProfileBase:
    """Build the profile variant for a stored user"""
    role = UserRole(user.role)
    if role == UserRole.DOCTOR:
        return DoctorProfile(
            specialization=user.specialization or "",
            license_number=user.license_number or "",
            experience=user.experience or 0,
        )
    return PROFILE_TYPES[role]()
