# src/services/user_service.py
from datetime import timedelta
from typing import Any, Dict, Optional
from uuid import UUID
from fastapi import BackgroundTasks
from jose import JWTError
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from models.user import User, UserRole
from schemas.email_schemas import EmailType
from schemas.profile_schemas import ProfileBase, profile_for
from schemas.user_schemas import LoginRequest, RegisterBase
from services.email_service import EmailDeliveryError, get_email_service
from utils.exceptions import (
    BadRequestException,
    ConflictException,
    InternalServerException,
    NotFoundException,
    UnauthorizedException,
)
from utils.logger import setup_logger
from utils.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    ensure_utc,
    generate_otp,
    generate_reset_token,
    get_utc_now,
    hash_password,
    hash_token,
    token_matches,
    verify_password,
)
from .base_service import BaseService

logger = setup_logger("USER_SERVICE")


class UserService(BaseService[User]):
    def __init__(self):
        super().__init__(User)

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        return await self.get_by(db, email=email.lower())

    def _issue_otp(self, user: User) -> str:
        otp = generate_otp()
        user.otp_hash = hash_token(otp)
        user.otp_expires_at = get_utc_now() + timedelta(
            minutes=settings.OTP_EXPIRE_MINUTES
        )
        return otp

    def _otp_context(self, user: User, otp: str) -> Dict[str, Any]:
        return {
            "name": profile_for(user).display_name(user.full_name),
            "otp": otp,
            "expires_minutes": settings.OTP_EXPIRE_MINUTES,
        }

    async def _issue_tokens(self, db: AsyncSession, user: User) -> Dict[str, str]:
        """Create an access/refresh pair and remember the refresh hash"""
        claims = {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "full_name": user.full_name,
            "role": UserRole(user.role).value,
        }
        access_token = create_access_token(claims)
        refresh_token = create_refresh_token({"sub": str(user.id)})

        user.refresh_token_hash = hash_token(refresh_token)
        await db.commit()
        await db.refresh(user)

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
        }

    async def register(
        self,
        db: AsyncSession,
        data: RegisterBase,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Dict[str, Any]:
        """Create an unverified account and email its OTP"""
        existing = await db.execute(
            select(User).where(
                or_(User.email == data.email, User.username == data.username)
            )
        )
        if existing.scalars().first():
            raise ConflictException("User with this email or username already exists")

        profile: ProfileBase = data.to_profile()
        values: Dict[str, Any] = {
            "username": data.username,
            "email": data.email,
            "full_name": data.full_name,
            "hashed_password": hash_password(data.password),
            "role": UserRole(profile.role),
            "is_verified": False,
        }
        if profile.role == UserRole.DOCTOR.value:
            duplicate_license = await self.get_by(
                db, license_number=profile.license_number
            )
            if duplicate_license:
                raise ConflictException("Doctor with this license number already exists")
            values.update(
                specialization=profile.specialization,
                license_number=profile.license_number,
                experience=profile.experience,
            )

        user = User(**values)
        otp = self._issue_otp(user)
        db.add(user)
        await db.commit()
        await db.refresh(user)

        logger.info(f"Registered {profile.role} account {user.username} ({user.id})")

        if background_tasks is not None:
            background_tasks.add_task(
                get_email_service().notify,
                EmailType.OTP_VERIFICATION,
                user.email,
                self._otp_context(user, otp),
            )

        return {"user": user, "message": profile.registration_message}

    async def verify_otp(
        self,
        db: AsyncSession,
        email: str,
        otp: str,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Dict[str, Any]:
        user = await self.get_by_email(db, email)
        if not user:
            raise NotFoundException("User not found")

        expires_at = ensure_utc(user.otp_expires_at)
        if not user.otp_hash or not expires_at or expires_at < get_utc_now():
            raise BadRequestException("OTP has expired")

        if not token_matches(otp, user.otp_hash):
            raise BadRequestException("Invalid OTP")

        user.is_verified = True
        user.otp_hash = None
        user.otp_expires_at = None
        tokens = await self._issue_tokens(db, user)

        logger.info(f"User {user.id} verified their email")

        if background_tasks is not None:
            profile = profile_for(user)
            background_tasks.add_task(
                get_email_service().notify,
                EmailType.WELCOME,
                user.email,
                {
                    "name": profile.display_name(user.full_name),
                    "intro": profile.welcome_intro,
                    "dashboard_url": f"{settings.FRONTEND_URL}{profile.dashboard_path}",
                },
            )

        return {"user": user, **tokens}

    async def resend_otp(self, db: AsyncSession, email: str) -> None:
        user = await self.get_by_email(db, email)
        if not user:
            raise NotFoundException("User not found")
        if user.is_verified:
            raise BadRequestException("User is already verified")

        otp = self._issue_otp(user)
        await db.commit()

        # Unlike notifications, a failed delivery fails the request
        try:
            await get_email_service().send_templated_email(
                EmailType.OTP_VERIFICATION, user.email, self._otp_context(user, otp)
            )
        except EmailDeliveryError as e:
            logger.error(f"Failed to send OTP email to {user.email}: {e}")
            raise InternalServerException("Failed to send OTP email")

    async def login(self, db: AsyncSession, data: LoginRequest) -> Dict[str, Any]:
        identifier = data.identifier
        result = await db.execute(
            select(User).where(
                or_(User.email == identifier, User.username == identifier)
            )
        )
        user = result.scalars().first()

        if not user or not verify_password(data.password, user.hashed_password):
            logger.warning(f"Failed login attempt for {identifier}")
            raise UnauthorizedException("Invalid credentials")

        if not user.is_verified:
            otp = self._issue_otp(user)
            await db.commit()
            await get_email_service().notify(
                EmailType.OTP_VERIFICATION, user.email, self._otp_context(user, otp)
            )
            raise UnauthorizedException(
                "Account not verified. A new OTP has been sent to your email."
            )

        tokens = await self._issue_tokens(db, user)
        logger.info(f"User {user.id} logged in")
        return {"user": user, **tokens}

    async def logout(self, db: AsyncSession, user: User) -> None:
        user.refresh_token_hash = None
        await db.commit()
        logger.info(f"User {user.id} logged out")

    async def refresh_tokens(
        self, db: AsyncSession, refresh_token: Optional[str]
    ) -> Dict[str, str]:
        """Exchange a valid refresh token for a new pair"""
        if not refresh_token:
            raise UnauthorizedException("Unauthorized request")

        try:
            payload = decode_refresh_token(refresh_token)
        except JWTError:
            raise UnauthorizedException("Invalid refresh token")

        user = await self.get_by(db, id=_parse_uuid(payload.get("sub")))
        if not user:
            raise UnauthorizedException("Invalid refresh token")

        if not token_matches(refresh_token, user.refresh_token_hash):
            raise UnauthorizedException("Refresh token is expired or used")

        return await self._issue_tokens(db, user)

    async def forgot_password(self, db: AsyncSession, email: str) -> None:
        user = await self.get_by_email(db, email)
        if not user:
            raise NotFoundException("User not found")

        reset_token = generate_reset_token()
        user.reset_password_token_hash = hash_token(reset_token)
        user.reset_password_expires_at = get_utc_now() + timedelta(
            minutes=settings.RESET_TOKEN_EXPIRE_MINUTES
        )
        await db.commit()

        try:
            await get_email_service().send_templated_email(
                EmailType.PASSWORD_RESET,
                user.email,
                {
                    "name": profile_for(user).display_name(user.full_name),
                    "reset_url": f"{settings.FRONTEND_URL}/reset-password/{reset_token}",
                    "expires_minutes": settings.RESET_TOKEN_EXPIRE_MINUTES,
                },
            )
        except EmailDeliveryError as e:
            logger.error(f"Password reset email to {user.email} failed: {e}")
            user.reset_password_token_hash = None
            user.reset_password_expires_at = None
            await db.commit()
            raise InternalServerException("Email could not be sent")

        logger.info(f"Password reset requested for user {user.id}")

    async def reset_password(self, db: AsyncSession, token: str, password: str) -> None:
        user = await self.get_by(db, reset_password_token_hash=hash_token(token))
        expires_at = ensure_utc(user.reset_password_expires_at) if user else None

        if not user or not expires_at or expires_at <= get_utc_now():
            raise BadRequestException("Password reset token is invalid or has expired")

        user.hashed_password = hash_password(password)
        user.reset_password_token_hash = None
        user.reset_password_expires_at = None
        # Existing sessions must log in again
        user.refresh_token_hash = None
        await db.commit()

        logger.info(f"Password reset completed for user {user.id}")


def _parse_uuid(value: Any) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise UnauthorizedException("Invalid refresh token")


user_service = UserService()
