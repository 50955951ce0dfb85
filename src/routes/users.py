# src/routes/users.py
from typing import Any, Dict, Optional
from fastapi import (
    APIRouter,
    BackgroundTasks,
    Body,
    Cookie,
    Depends,
    Request,
    Response,
    status,
)
from sqlalchemy.ext.asyncio import AsyncSession
from core.config import settings
from core.dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    get_current_user,
    require_admin,
    require_doctor_or_admin,
)
from db.database import get_db
from models.user import User
from schemas.base_schemas import ApiResponse
from schemas.profile_schemas import profile_for
from schemas.user_schemas import (
    AuthData,
    DashboardData,
    EmailRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegistrationData,
    ResetPasswordRequest,
    TokenPair,
    UserPublic,
    UserRegister,
    VerifyOtpRequest,
)
from services.user_service import user_service
from utils.rate_limiter import limiter
from utils.logger import setup_logger

logger = setup_logger("USER_ROUTES")
router = APIRouter(prefix="/users", tags=["users"])


def _set_auth_cookies(response: Response, tokens: Dict[str, Any]) -> None:
    options = {
        "httponly": True,
        "secure": settings.IS_PRODUCTION,
        "samesite": "strict",
    }
    response.set_cookie(ACCESS_COOKIE, tokens["access_token"], **options)
    response.set_cookie(REFRESH_COOKIE, tokens["refresh_token"], **options)


def _auth_data(result: Dict[str, Any]) -> AuthData:
    return AuthData(
        user=UserPublic.from_user(result["user"]),
        access_token=result["access_token"],
        refresh_token=result["refresh_token"],
    )


@router.post(
    "/register",
    response_model=ApiResponse[RegistrationData],
    status_code=status.HTTP_201_CREATED,
    summary="Register a user or doctor",
    description="Create an unverified account and email a one-time passcode",
)
@limiter.limit("10/minute")
async def register(
    request: Request,
    user_data: UserRegister,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
) -> Any:
    result = await user_service.register(db, user_data.root, background_tasks)
    return ApiResponse(
        status_code=status.HTTP_201_CREATED,
        message=result["message"],
        data=RegistrationData(user=UserPublic.from_user(result["user"])),
    )


@router.post(
    "/verify-otp",
    response_model=ApiResponse[AuthData],
    summary="Verify email with OTP",
    description="Mark the account verified and log the user in",
)
@limiter.limit("10/minute")
async def verify_otp(
    request: Request,
    response: Response,
    otp_data: VerifyOtpRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
) -> Any:
    result = await user_service.verify_otp(
        db, otp_data.email, otp_data.otp, background_tasks
    )
    _set_auth_cookies(response, result)
    return ApiResponse(
        message="OTP verified successfully. User is now logged in.",
        data=_auth_data(result),
    )


@router.post(
    "/resend-otp",
    response_model=ApiResponse[dict],
    summary="Resend OTP",
)
@limiter.limit("5/minute")
async def resend_otp(
    request: Request,
    email_data: EmailRequest,
    db: AsyncSession = Depends(get_db),
) -> Any:
    await user_service.resend_otp(db, email_data.email)
    return ApiResponse(message="OTP sent successfully", data={})


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    summary="User login",
    description="Authenticate with username or email and return access and refresh tokens",
)
@limiter.limit("5/minute")
async def login(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> Any:
    result = await user_service.login(db, login_data)
    _set_auth_cookies(response, result)
    return ApiResponse(message="User logged in successfully", data=_auth_data(result))


@router.post(
    "/logout",
    response_model=ApiResponse[dict],
    summary="Log out",
)
async def logout(
    response: Response,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Any:
    await user_service.logout(db, current_user)
    response.delete_cookie(ACCESS_COOKIE)
    response.delete_cookie(REFRESH_COOKIE)
    return ApiResponse(message="User logged out successfully", data={})


@router.get(
    "/me",
    response_model=ApiResponse[UserPublic],
    summary="Current user",
)
async def me(current_user: User = Depends(get_current_user)) -> Any:
    return ApiResponse(
        message="Current user fetched successfully",
        data=UserPublic.from_user(current_user),
    )


@router.post(
    "/forgot-password",
    response_model=ApiResponse[dict],
    summary="Request a password reset link",
)
@limiter.limit("5/minute")
async def forgot_password(
    request: Request,
    email_data: EmailRequest,
    db: AsyncSession = Depends(get_db),
) -> Any:
    await user_service.forgot_password(db, email_data.email)
    return ApiResponse(message="Password reset email sent successfully", data={})


@router.post(
    "/reset-password/{token}",
    response_model=ApiResponse[dict],
    summary="Reset password",
)
async def reset_password(
    token: str,
    reset_data: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> Any:
    await user_service.reset_password(db, token, reset_data.password)
    return ApiResponse(message="Password reset successfully", data={})


@router.post(
    "/refresh-token",
    response_model=ApiResponse[TokenPair],
    summary="Refresh access tokens",
    description="Exchange a refresh token (cookie or body) for a new pair",
)
async def refresh_token(
    response: Response,
    refresh_data: Optional[RefreshTokenRequest] = Body(default=None),
    refresh_cookie: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE),
    db: AsyncSession = Depends(get_db),
) -> Any:
    incoming = refresh_cookie or (refresh_data.refresh_token if refresh_data else None)
    tokens = await user_service.refresh_tokens(db, incoming)
    _set_auth_cookies(response, tokens)
    return ApiResponse(message="Access token refreshed", data=TokenPair(**tokens))


@router.get(
    "/user-dashboard",
    response_model=ApiResponse[DashboardData],
    summary="User dashboard",
)
async def user_dashboard(current_user: User = Depends(get_current_user)) -> Any:
    profile = profile_for(current_user)
    return ApiResponse(
        message="Dashboard loaded",
        data=DashboardData(
            message=f"Welcome, {profile.display_name(current_user.full_name)}",
            user=UserPublic.from_user(current_user),
        ),
    )


@router.get(
    "/doctor-dashboard",
    response_model=ApiResponse[DashboardData],
    summary="Doctor dashboard",
)
async def doctor_dashboard(
    current_user: User = Depends(require_doctor_or_admin),
) -> Any:
    return ApiResponse(
        message="Doctor dashboard loaded",
        data=DashboardData(
            message="Welcome to the doctor dashboard",
            user=UserPublic.from_user(current_user),
        ),
    )


@router.get(
    "/admin-dashboard",
    response_model=ApiResponse[DashboardData],
    summary="Admin dashboard",
)
async def admin_dashboard(current_user: User = Depends(require_admin)) -> Any:
    return ApiResponse(
        message="Admin dashboard loaded",
        data=DashboardData(
            message="Welcome to the admin dashboard",
            user=UserPublic.from_user(current_user),
        ),
    )
