# src/routes/shared_predictions.py
from typing import Any, Sequence
from uuid import UUID
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from core.dependencies import require_doctor, require_patient
from db.database import get_db
from models.shared_prediction import SharedPrediction
from models.user import User
from schemas.base_schemas import ApiResponse, PaginatedResponse, Pagination
from schemas.shared_prediction_schemas import (
    DoctorResponseCreate,
    ReceivedStatusFilter,
    ShareCreate,
    SharedPredictionPublic,
)
from services.shared_prediction_service import shared_prediction_service
from utils.exceptions import BaseAPIException, InternalServerException
from utils.logger import setup_logger

router = APIRouter(prefix="/shared-predictions", tags=["shared-predictions"])
logger = setup_logger("SHARED_PREDICTION_ROUTES")


def _page(
    shares: Sequence[SharedPrediction], total: int, page: int, limit: int
) -> PaginatedResponse[SharedPredictionPublic]:
    return PaginatedResponse[SharedPredictionPublic](
        items=[SharedPredictionPublic.model_validate(share) for share in shares],
        pagination=Pagination.build(page, limit, total),
    )


@router.post(
    "/share",
    response_model=ApiResponse[SharedPredictionPublic],
    status_code=status.HTTP_201_CREATED,
    summary="Share a prediction with a doctor",
    description="Create a share link for one of the caller's predictions and notify the doctor",
)
async def share_prediction(
    share_data: ShareCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_patient),
) -> Any:
    try:
        share = await shared_prediction_service.create_share(
            db, current_user, share_data, background_tasks
        )
        return ApiResponse(
            status_code=status.HTTP_201_CREATED,
            message="Prediction shared successfully",
            data=SharedPredictionPublic.model_validate(share),
        )
    except BaseAPIException:
        raise
    except Exception as e:
        logger.error(f"Failed to share prediction: {e}", exc_info=True)
        raise InternalServerException("Failed to share prediction")


@router.get(
    "/my-shares",
    response_model=ApiResponse[PaginatedResponse[SharedPredictionPublic]],
    summary="List my shared predictions",
    description="Shares created by the caller, newest first",
)
async def list_my_shares(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_patient),
) -> Any:
    shares, total = await shared_prediction_service.list_for_patient(
        db, current_user.id, page, limit
    )
    return ApiResponse(
        message="Shared predictions retrieved successfully",
        data=_page(shares, total, page, limit),
    )


@router.get(
    "/received",
    response_model=ApiResponse[PaginatedResponse[SharedPredictionPublic]],
    summary="List predictions shared with me",
    description="Shares received by the calling doctor; revoked ones are hidden unless asked for",
)
async def list_received_shares(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status_filter: ReceivedStatusFilter = Query("active", alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_doctor),
) -> Any:
    shares, total = await shared_prediction_service.list_for_doctor(
        db, current_user.id, page, limit, status_filter
    )
    return ApiResponse(
        message="Received predictions retrieved successfully",
        data=_page(shares, total, page, limit),
    )


@router.get(
    "/view/{share_code}",
    response_model=ApiResponse[SharedPredictionPublic],
    summary="Open a shared prediction",
    description="Returns the share and marks it viewed on first open",
)
async def view_shared_prediction(
    share_code: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_doctor),
) -> Any:
    share = await shared_prediction_service.view_by_code(
        db, share_code, current_user.id
    )
    return ApiResponse(
        message="Shared prediction retrieved successfully",
        data=SharedPredictionPublic.model_validate(share),
    )


@router.post(
    "/respond/{share_code}",
    response_model=ApiResponse[SharedPredictionPublic],
    summary="Respond to a shared prediction",
    description="Record the doctor's response and notify the patient",
)
async def respond_to_shared_prediction(
    share_code: str,
    response_data: DoctorResponseCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_doctor),
) -> Any:
    try:
        share = await shared_prediction_service.respond(
            db, share_code, current_user.id, response_data, background_tasks
        )
        return ApiResponse(
            message="Response added successfully",
            data=SharedPredictionPublic.model_validate(share),
        )
    except BaseAPIException:
        raise
    except Exception as e:
        logger.error(f"Failed to respond to share {share_code}: {e}", exc_info=True)
        raise InternalServerException("Failed to record response")


@router.patch(
    "/revoke/{share_id}",
    response_model=ApiResponse[SharedPredictionPublic],
    summary="Revoke a share",
    description="Withdraw the doctor's access to a shared prediction",
)
async def revoke_shared_prediction(
    share_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_patient),
) -> Any:
    share = await shared_prediction_service.revoke(db, share_id, current_user.id)
    return ApiResponse(
        message="Share access revoked successfully",
        data=SharedPredictionPublic.model_validate(share),
    )
