# src/services/prediction_service.py
from typing import Sequence, Tuple
from uuid import UUID
from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from models.prediction import Prediction, RiskLevel
from schemas.prediction_schemas import (
    PredictionCreate,
    PredictionListParams,
    PredictionStats,
)
from utils.exceptions import NotFoundException, handle_db_exception
from utils.logger import setup_logger
from utils.security import get_utc_now
from .base_service import BaseService
from .shared_prediction_service import shared_prediction_service

logger = setup_logger("PREDICTION_SERVICE")

# Severity order rather than alphabetical
RISK_ORDER = case(
    (Prediction.risk_level == RiskLevel.LOW, 0),
    (Prediction.risk_level == RiskLevel.MEDIUM, 1),
    (Prediction.risk_level == RiskLevel.HIGH, 2),
    else_=3,
)

SORT_COLUMNS = {
    "timestamp": Prediction.timestamp,
    "created_at": Prediction.created_at,
    "confidence": Prediction.confidence,
    "risk_level": RISK_ORDER,
}


class PredictionService(BaseService[Prediction]):
    def __init__(self):
        super().__init__(Prediction)

    def _owned(self, user_id: UUID):
        return select(Prediction).where(
            Prediction.user_id == user_id, Prediction.is_deleted.is_(False)
        )

    async def create_prediction(
        self, db: AsyncSession, user_id: UUID, data: PredictionCreate
    ) -> Prediction:
        """Persist a validated prediction for its owner"""
        result = data.result
        prediction = await self.create(
            db,
            {
                "user_id": user_id,
                "symptoms": data.symptoms,
                "clinical_inputs": data.clinical_inputs.model_dump(exclude_none=True),
                "prediction": result.prediction,
                "result_class": result.result_class,
                "confidence": result.confidence,
                "risk_level": RiskLevel(result.risk_level),
                "recommendations": result.recommendations,
                "notes": result.notes,
                "model_response": data.model_response,
                "timestamp": get_utc_now(),
            },
        )
        logger.info(f"Stored prediction {prediction.id} for user {user_id}")
        return prediction

    async def list_predictions(
        self, db: AsyncSession, user_id: UUID, params: PredictionListParams
    ) -> Tuple[Sequence[Prediction], int]:
        column = SORT_COLUMNS[params.sort_by]
        direction = column.asc() if params.sort_order == "asc" else column.desc()
        query = self._owned(user_id).order_by(direction, Prediction.id.desc())
        return await self.paginate(db, query, params.page, params.limit)

    async def get_prediction(
        self, db: AsyncSession, user_id: UUID, prediction_id: UUID
    ) -> Prediction:
        result = await db.execute(
            self._owned(user_id).where(Prediction.id == prediction_id)
        )
        prediction = result.scalar_one_or_none()
        if not prediction:
            raise NotFoundException("Prediction not found")
        return prediction

    async def delete_prediction(
        self, db: AsyncSession, user_id: UUID, prediction_id: UUID
    ) -> int:
        """
        Soft-delete a prediction and revoke its live shares.

        Both changes commit together. Returns the number of shares revoked.
        """
        try:
            result = await db.execute(
                update(Prediction)
                .where(
                    Prediction.id == prediction_id,
                    Prediction.user_id == user_id,
                    Prediction.is_deleted.is_(False),
                )
                .values(is_deleted=True, updated_at=get_utc_now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundException("Prediction not found")

            revoked = await shared_prediction_service.revoke_for_prediction(
                db, prediction_id
            )
            await db.commit()
        except Exception as e:
            await handle_db_exception(db, "delete prediction", e)

        logger.info(
            f"Deleted prediction {prediction_id} for user {user_id}, "
            f"revoked {revoked} share(s)"
        )
        return revoked

    async def get_stats(self, db: AsyncSession, user_id: UUID) -> PredictionStats:
        base_filter = (Prediction.user_id == user_id, Prediction.is_deleted.is_(False))

        totals = await db.execute(
            select(func.count(Prediction.id), func.avg(Prediction.confidence)).where(
                *base_filter
            )
        )
        total, avg_confidence = totals.one()

        month_start = get_utc_now().replace(
            day=1, hour=0, minute=0, second=0, microsecond=0
        )
        this_month = await db.execute(
            select(func.count(Prediction.id)).where(
                *base_filter, Prediction.timestamp >= month_start
            )
        )

        distribution = {level.value: 0 for level in RiskLevel}
        rows = await db.execute(
            select(Prediction.risk_level, func.count(Prediction.id))
            .where(*base_filter)
            .group_by(Prediction.risk_level)
        )
        for risk_level, count in rows.all():
            distribution[RiskLevel(risk_level).value] = count

        return PredictionStats(
            total_predictions=total,
            this_month_predictions=this_month.scalar_one(),
            avg_confidence=round(float(avg_confidence or 0), 4),
            risk_distribution=distribution,
        )


prediction_service = PredictionService()
