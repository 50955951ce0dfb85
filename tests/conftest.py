"""
Pytest configuration and shared fixtures for the MedicAI backend tests.

This module provides:
- Test database setup (async SQLite in-memory)
- httpx AsyncClient bound to the FastAPI app
- User fixtures for every role, with bearer headers
- A recording email service that captures outgoing mail
"""

import os
import re
from datetime import timedelta
from typing import Any, AsyncGenerator, Dict, List, Optional

# =============================================================================
# TEST ENVIRONMENT BEFORE ANY APP IMPORTS
# =============================================================================
os.environ["ENVIRONMENT"] = "testing"
os.environ["SQLITE_MODE"] = "true"
os.environ["DB_NAME"] = "medicai_test"
os.environ["LOG_FILE"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SEND_EMAILS"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from db.database import Base, get_db
from main import app
from models.prediction import Prediction, RiskLevel
from models.user import User, UserRole
from schemas.email_schemas import EmailResponse
from services import email_service as email_service_module
from services.email_service import EmailDeliveryError, ResendEmailService
from utils.security import create_access_token, get_utc_now, hash_password

TEST_PASSWORD = "Secret123!"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest_asyncio.fixture
async def test_engine():
    """Async SQLite in-memory engine shared by every session in a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by tests to seed and inspect data."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client for the app; every request gets its own session."""

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    # Unhandled errors must come back as 500 envelopes, not test exceptions
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# =============================================================================
# EMAIL FIXTURES
# =============================================================================


class RecordingEmailService(ResendEmailService):
    """Renders real templates but keeps messages in memory."""

    def __init__(self):
        super().__init__()
        self.sent: List[Dict[str, Any]] = []
        self.fail = False

    async def send(self, to, subject, html, text=None) -> EmailResponse:
        if self.fail:
            raise EmailDeliveryError("delivery refused")
        recipients = [to] if isinstance(to, str) else list(to)
        self.sent.append({"to": recipients, "subject": subject, "html": html, "text": text})
        return EmailResponse(success=True, message_id="test", recipients=recipients)

    def to(self, address: str) -> List[Dict[str, Any]]:
        return [mail for mail in self.sent if address in mail["to"]]

    def last_otp(self, address: str) -> Optional[str]:
        for mail in reversed(self.to(address)):
            match = re.search(r">\s*(\d{6})\s*<", mail["html"])
            if match:
                return match.group(1)
        return None


@pytest.fixture(autouse=True)
def outbox(monkeypatch) -> RecordingEmailService:
    service = RecordingEmailService()
    monkeypatch.setattr(email_service_module, "_email_service", service)
    return service


# =============================================================================
# USER FIXTURES
# =============================================================================


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(
        {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "full_name": user.full_name,
            "role": UserRole(user.role).value,
        }
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(db_session):
    """Factory that inserts a user straight into the database."""

    async def _make_user(
        username: str,
        role: UserRole = UserRole.USER,
        is_verified: bool = True,
        **extra: Any,
    ) -> User:
        values: Dict[str, Any] = {
            "username": username,
            "email": f"{username}@example.com",
            "full_name": extra.pop("full_name", username.title()),
            "hashed_password": hash_password(TEST_PASSWORD),
            "role": role,
            "is_verified": is_verified,
        }
        if role == UserRole.DOCTOR:
            values.update(
                specialization="Cardiology",
                license_number=f"LIC-{username}",
                experience=8,
            )
        values.update(extra)
        user = User(**values)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest_asyncio.fixture
async def patient(make_user) -> User:
    return await make_user("patient", full_name="Pat Patient")


@pytest_asyncio.fixture
async def other_patient(make_user) -> User:
    return await make_user("otherpatient")


@pytest_asyncio.fixture
async def doctor(make_user) -> User:
    return await make_user("doctor", role=UserRole.DOCTOR, full_name="Dana House")


@pytest_asyncio.fixture
async def other_doctor(make_user) -> User:
    return await make_user("otherdoctor", role=UserRole.DOCTOR)


@pytest_asyncio.fixture
async def unverified_doctor(make_user) -> User:
    return await make_user("newdoctor", role=UserRole.DOCTOR, is_verified=False)


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("admin", role=UserRole.ADMIN)


@pytest.fixture
def patient_headers(patient) -> Dict[str, str]:
    return auth_headers(patient)


@pytest.fixture
def doctor_headers(doctor) -> Dict[str, str]:
    return auth_headers(doctor)


# =============================================================================
# PREDICTION FIXTURES
# =============================================================================


@pytest.fixture
def prediction_payload() -> Dict[str, Any]:
    """Body accepted by POST /predictions, in the frontend's camelCase."""
    return {
        "symptoms": ["chest pain", "shortness of breath"],
        "clinicalInputs": {
            "age": 54,
            "gender": "male",
            "systolicBp": 150,
            "diastolicBp": 95,
            "cholesterol": 260,
            "heartRate": 88,
            "severity": "moderate",
        },
        "result": {
            "prediction": "Heart Disease",
            "resultClass": 1,
            "confidence": 0.87,
            "riskLevel": "High",
            "recommendations": ["Consult a cardiologist"],
        },
    }


@pytest.fixture
def make_prediction(db_session):
    """Factory that stores a prediction for a user."""

    async def _make_prediction(
        user: User,
        risk_level: RiskLevel = RiskLevel.MEDIUM,
        confidence: float = 0.7,
        days_ago: int = 0,
    ) -> Prediction:
        when = get_utc_now() - timedelta(days=days_ago)
        prediction = Prediction(
            user_id=user.id,
            symptoms=["fatigue"],
            clinical_inputs={"age": 40, "gender": "female"},
            prediction="Heart Disease" if risk_level != RiskLevel.LOW else "No Disease",
            result_class=0 if risk_level == RiskLevel.LOW else 1,
            confidence=confidence,
            risk_level=risk_level,
            recommendations=["Stay active"],
            timestamp=when,
            created_at=when,
            updated_at=when,
        )
        db_session.add(prediction)
        await db_session.commit()
        await db_session.refresh(prediction)
        return prediction

    return _make_prediction
