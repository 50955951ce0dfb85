# src/services/shared_prediction_service.py
from datetime import timedelta
from typing import Any, Dict, Optional, Sequence, Tuple
from uuid import UUID
from fastapi import BackgroundTasks
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from core.config import settings
from models.prediction import Prediction
from models.shared_prediction import SharedPrediction, ShareStatus
from models.user import User, UserRole
from schemas.email_schemas import EmailType
from schemas.profile_schemas import profile_for
from schemas.shared_prediction_schemas import DoctorResponseCreate, ShareCreate
from services.email_service import get_email_service
from utils.exceptions import BadRequestException, ConflictException, NotFoundException
from utils.logger import setup_logger
from utils.security import generate_share_code, get_utc_now
from .base_service import BaseService

logger = setup_logger("SHARED_PREDICTION_SERVICE")

LOAD_RELATED = (
    selectinload(SharedPrediction.prediction),
    selectinload(SharedPrediction.patient),
    selectinload(SharedPrediction.doctor),
)

RESPONDABLE_STATUSES = (ShareStatus.PENDING, ShareStatus.VIEWED)


class SharedPredictionService(BaseService[SharedPrediction]):
    """
    Share links between a patient's prediction and a doctor.

    Every state change is a single conditional UPDATE on the row, so the
    status machine (pending -> viewed -> responded, anything -> revoked)
    holds even when requests race.
    """

    def __init__(self):
        super().__init__(SharedPrediction)

    async def _load(self, db: AsyncSession, *conditions) -> Optional[SharedPrediction]:
        result = await db.execute(
            select(SharedPrediction)
            .where(*conditions)
            .options(*LOAD_RELATED)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def _live_for_doctor(self, share_code: str, doctor_id: UUID) -> tuple:
        """Conditions for a share the doctor may still open"""
        return (
            SharedPrediction.share_code == share_code,
            SharedPrediction.doctor_id == doctor_id,
            SharedPrediction.is_active.is_(True),
            SharedPrediction.expires_at > get_utc_now(),
        )

    async def create_share(
        self,
        db: AsyncSession,
        patient: User,
        data: ShareCreate,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> SharedPrediction:
        """Share one of the patient's predictions with a verified doctor"""
        prediction_result = await db.execute(
            select(Prediction).where(
                Prediction.id == data.prediction_id,
                Prediction.user_id == patient.id,
                Prediction.is_deleted.is_(False),
            )
        )
        prediction = prediction_result.scalar_one_or_none()
        if not prediction:
            raise NotFoundException("Prediction not found or access denied")

        doctor_result = await db.execute(
            select(User).where(
                User.email == data.doctor_email,
                User.role == UserRole.DOCTOR,
                User.is_verified.is_(True),
            )
        )
        doctor = doctor_result.scalar_one_or_none()
        if not doctor:
            raise NotFoundException("Doctor not found with this email")

        existing = await db.execute(
            select(SharedPrediction.id).where(
                SharedPrediction.prediction_id == prediction.id,
                SharedPrediction.doctor_id == doctor.id,
                SharedPrediction.is_active.is_(True),
            )
        )
        if existing.first():
            raise ConflictException("Prediction already shared with this doctor")

        now = get_utc_now()
        share = SharedPrediction(
            prediction_id=prediction.id,
            patient_id=patient.id,
            doctor_id=doctor.id,
            share_code=generate_share_code(),
            message=data.message or None,
            status=ShareStatus.PENDING,
            is_active=True,
            expires_at=now + timedelta(days=settings.SHARE_EXPIRE_DAYS),
            created_at=now,
            updated_at=now,
        )
        db.add(share)
        try:
            await db.commit()
        except IntegrityError:
            # Lost a race on the active-pair index
            await db.rollback()
            raise ConflictException("Prediction already shared with this doctor")

        share = await self._load(db, SharedPrediction.id == share.id)
        logger.info(
            f"Prediction {prediction.id} shared by {patient.id} with doctor {doctor.id}"
        )

        if background_tasks is not None:
            background_tasks.add_task(
                get_email_service().notify,
                EmailType.PREDICTION_SHARED,
                doctor.email,
                self._shared_context(share),
            )
        return share

    async def list_for_patient(
        self, db: AsyncSession, patient_id: UUID, page: int, limit: int
    ) -> Tuple[Sequence[SharedPrediction], int]:
        query = (
            select(SharedPrediction)
            .where(SharedPrediction.patient_id == patient_id)
            .order_by(SharedPrediction.created_at.desc(), SharedPrediction.id.desc())
        )
        return await self.paginate(db, query, page, limit, options=LOAD_RELATED)

    async def list_for_doctor(
        self,
        db: AsyncSession,
        doctor_id: UUID,
        page: int,
        limit: int,
        status_filter: str = "active",
    ) -> Tuple[Sequence[SharedPrediction], int]:
        """Shares received by a doctor; "active" hides revoked ones, "all" shows everything"""
        query = select(SharedPrediction).where(SharedPrediction.doctor_id == doctor_id)
        if status_filter == "active":
            query = query.where(SharedPrediction.status != ShareStatus.REVOKED)
        elif status_filter != "all":
            query = query.where(SharedPrediction.status == ShareStatus(status_filter))

        query = query.order_by(
            SharedPrediction.created_at.desc(), SharedPrediction.id.desc()
        )
        return await self.paginate(db, query, page, limit, options=LOAD_RELATED)

    async def view_by_code(
        self, db: AsyncSession, share_code: str, doctor_id: UUID
    ) -> SharedPrediction:
        """Open a share; the first open marks it viewed"""
        share = await self._load(db, *self._live_for_doctor(share_code, doctor_id))
        if not share:
            raise NotFoundException("Shared prediction not found or expired")

        if share.status == ShareStatus.PENDING:
            now = get_utc_now()
            await db.execute(
                update(SharedPrediction)
                .where(
                    SharedPrediction.id == share.id,
                    SharedPrediction.status == ShareStatus.PENDING,
                )
                .values(status=ShareStatus.VIEWED, viewed_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
            share = await self._load(db, SharedPrediction.id == share.id)
            logger.info(f"Share {share.id} viewed by doctor {doctor_id}")

        return share

    async def respond(
        self,
        db: AsyncSession,
        share_code: str,
        doctor_id: UUID,
        data: DoctorResponseCreate,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> SharedPrediction:
        """Record the doctor's response; only one response can ever win"""
        if not data.message or not data.message.strip():
            raise BadRequestException("Response message is required")

        now = get_utc_now()
        result = await db.execute(
            update(SharedPrediction)
            .where(
                *self._live_for_doctor(share_code, doctor_id),
                SharedPrediction.status.in_(RESPONDABLE_STATUSES),
            )
            .values(
                status=ShareStatus.RESPONDED,
                response_message=data.message,
                response_recommendations=list(data.recommendations),
                follow_up_required=data.follow_up_required,
                responded_at=now,
                viewed_at=func.coalesce(SharedPrediction.viewed_at, now),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFoundException("Shared prediction not found or already responded")
        await db.commit()

        share = await self._load(db, SharedPrediction.share_code == share_code)
        logger.info(f"Doctor {doctor_id} responded to share {share.id}")

        if background_tasks is not None:
            background_tasks.add_task(
                get_email_service().notify,
                EmailType.DOCTOR_RESPONSE,
                share.patient.email,
                self._response_context(share),
            )
        return share

    async def revoke(
        self, db: AsyncSession, share_id: UUID, patient_id: UUID
    ) -> SharedPrediction:
        now = get_utc_now()
        result = await db.execute(
            update(SharedPrediction)
            .where(
                SharedPrediction.id == share_id,
                SharedPrediction.patient_id == patient_id,
                SharedPrediction.status != ShareStatus.REVOKED,
            )
            .values(
                status=ShareStatus.REVOKED,
                is_active=False,
                revoked_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFoundException("Shared prediction not found or already revoked")
        await db.commit()

        logger.info(f"Share {share_id} revoked by patient {patient_id}")
        return await self._load(db, SharedPrediction.id == share_id)

    async def revoke_for_prediction(self, db: AsyncSession, prediction_id: UUID) -> int:
        """Revoke every live share of a prediction; the caller commits"""
        now = get_utc_now()
        result = await db.execute(
            update(SharedPrediction)
            .where(
                SharedPrediction.prediction_id == prediction_id,
                SharedPrediction.status != ShareStatus.REVOKED,
            )
            .values(
                status=ShareStatus.REVOKED,
                is_active=False,
                revoked_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _shared_context(self, share: SharedPrediction) -> Dict[str, Any]:
        return {
            "doctor_name": profile_for(share.doctor).display_name(share.doctor.full_name),
            "patient_name": share.patient.full_name,
            "prediction_label": share.prediction.prediction,
            "risk_level": share.prediction.risk_level.value,
            "message": share.message,
            "view_url": f"{settings.FRONTEND_URL}/doctor/shared/{share.share_code}",
            "expires_at": share.expires_at.strftime("%d %B %Y"),
        }

    def _response_context(self, share: SharedPrediction) -> Dict[str, Any]:
        return {
            "patient_name": share.patient.full_name,
            "doctor_name": profile_for(share.doctor).display_name(share.doctor.full_name),
            "prediction_label": share.prediction.prediction,
            "response_message": share.response_message,
            "recommendations": share.response_recommendations or [],
            "follow_up_required": share.follow_up_required,
        }


shared_prediction_service = SharedPredictionService()
