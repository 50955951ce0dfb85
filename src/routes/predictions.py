# src/routes/predictions.py
from typing import Any
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from core.dependencies import require_patient_or_admin
from db.database import get_db
from models.user import User
from schemas.base_schemas import ApiResponse, PaginatedResponse, Pagination
from schemas.prediction_schemas import (
    PredictionCreate,
    PredictionListParams,
    PredictionPublic,
    PredictionStats,
    SortField,
    SortOrder,
)
from services.prediction_service import prediction_service
from utils.exceptions import BaseAPIException, InternalServerException
from utils.logger import setup_logger

router = APIRouter(prefix="/predictions", tags=["predictions"])
logger = setup_logger("PREDICTION_ROUTES")


@router.post(
    "/",
    response_model=ApiResponse[PredictionPublic],
    status_code=status.HTTP_201_CREATED,
    summary="Store a prediction",
    description="Validate and persist a prediction for the current user",
)
async def create_prediction(
    prediction_data: PredictionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_patient_or_admin),
) -> Any:
    try:
        prediction = await prediction_service.create_prediction(
            db, current_user.id, prediction_data
        )
        return ApiResponse(
            status_code=status.HTTP_201_CREATED,
            message="Prediction saved successfully",
            data=PredictionPublic.model_validate(prediction),
        )
    except BaseAPIException:
        raise
    except Exception as e:
        logger.error(f"Failed to store prediction: {e}", exc_info=True)
        raise InternalServerException("Failed to store prediction")


@router.get(
    "/",
    response_model=ApiResponse[PaginatedResponse[PredictionPublic]],
    summary="List my predictions",
)
async def list_predictions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: SortField = Query("timestamp", alias="sortBy"),
    sort_order: SortOrder = Query("desc", alias="sortOrder"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_patient_or_admin),
) -> Any:
    params = PredictionListParams(
        page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
    )
    predictions, total = await prediction_service.list_predictions(
        db, current_user.id, params
    )
    return ApiResponse(
        message="Predictions retrieved successfully",
        data=PaginatedResponse[PredictionPublic](
            items=[PredictionPublic.model_validate(p) for p in predictions],
            pagination=Pagination.build(params.page, params.limit, total),
        ),
    )


@router.get(
    "/stats",
    response_model=ApiResponse[PredictionStats],
    summary="Prediction statistics",
    description="Totals, this month's count, average confidence and risk distribution",
)
async def prediction_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_patient_or_admin),
) -> Any:
    stats = await prediction_service.get_stats(db, current_user.id)
    return ApiResponse(message="Prediction stats retrieved successfully", data=stats)


@router.get(
    "/{prediction_id}",
    response_model=ApiResponse[PredictionPublic],
    summary="Get a prediction",
)
async def get_prediction(
    prediction_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_patient_or_admin),
) -> Any:
    prediction = await prediction_service.get_prediction(
        db, current_user.id, prediction_id
    )
    return ApiResponse(
        message="Prediction retrieved successfully",
        data=PredictionPublic.model_validate(prediction),
    )


@router.delete(
    "/{prediction_id}",
    response_model=ApiResponse[dict],
    summary="Delete a prediction",
    description="Soft-delete a prediction and revoke every share of it",
)
async def delete_prediction(
    prediction_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_patient_or_admin),
) -> Any:
    revoked = await prediction_service.delete_prediction(
        db, current_user.id, prediction_id
    )
    return ApiResponse(
        message="Prediction deleted successfully",
        data={"id": str(prediction_id), "revoked_shares": revoked},
    )
