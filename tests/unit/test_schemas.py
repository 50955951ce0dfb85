"""
Unit tests for request and response schemas.

Tests cover:
- Clinical input ranges and symptom cleaning
- Registration dispatch on role
- camelCase and snake_case request keys
- Pagination metadata
"""

import uuid

import pytest
from pydantic import ValidationError

from models.user import User, UserRole
from schemas.base_schemas import ApiResponse, Pagination
from schemas.prediction_schemas import ClinicalInputs, PredictionCreate
from schemas.profile_schemas import DoctorProfile, PatientProfile, profile_for
from schemas.shared_prediction_schemas import DoctorResponseCreate, ShareCreate
from schemas.user_schemas import (
    DoctorRegister,
    LoginRequest,
    PatientRegister,
    RegisterBase,
    UserRegister,
)


class TestClinicalInputs:
    """Range checks on vitals."""

    def test_accepts_camel_case_keys(self):
        inputs = ClinicalInputs.model_validate(
            {"age": 50, "gender": "female", "systolicBp": 120, "heartRate": 70}
        )

        assert inputs.systolic_bp == 120
        assert inputs.heart_rate == 70

    def test_accepts_snake_case_keys(self):
        inputs = ClinicalInputs.model_validate(
            {"age": 50, "gender": "female", "diastolic_bp": 80}
        )

        assert inputs.diastolic_bp == 80

    @pytest.mark.parametrize(
        "field,value",
        [
            ("age", 121),
            ("age", -1),
            ("systolicBp", 79),
            ("diastolicBp", 131),
            ("cholesterol", 601),
            ("heartRate", 29),
            ("bloodSugar", 401),
        ],
    )
    def test_out_of_range_values_rejected(self, field, value):
        body = {"age": 40, "gender": "male", field: value}

        with pytest.raises(ValidationError):
            ClinicalInputs.model_validate(body)

    def test_unknown_gender_rejected(self):
        with pytest.raises(ValidationError):
            ClinicalInputs.model_validate({"age": 40, "gender": "unknown"})


class TestPredictionCreate:
    def _body(self, **overrides):
        body = {
            "symptoms": [" cough ", "fever"],
            "clinicalInputs": {"age": 30, "gender": "other"},
            "result": {"prediction": "No Disease", "resultClass": 0, "confidence": 0.2},
        }
        body.update(overrides)
        return body

    def test_symptoms_are_trimmed(self):
        data = PredictionCreate.model_validate(self._body())

        assert data.symptoms == ["cough", "fever"]
        assert data.result.risk_level == "Low"

    def test_empty_symptom_list_rejected(self):
        with pytest.raises(ValidationError):
            PredictionCreate.model_validate(self._body(symptoms=[]))

    def test_blank_symptom_rejected(self):
        with pytest.raises(ValidationError):
            PredictionCreate.model_validate(self._body(symptoms=["cough", "   "]))

    def test_confidence_above_one_rejected(self):
        result = {"prediction": "X", "resultClass": 1, "confidence": 1.5}

        with pytest.raises(ValidationError):
            PredictionCreate.model_validate(self._body(result=result))


class TestRegistration:
    """Registration bodies dispatch on role."""

    base = {
        "username": "NewUser",
        "email": "New.User@Example.com",
        "fullName": "New User",
        "password": "Secret123!",
    }

    def test_missing_role_is_a_patient(self):
        data = UserRegister.model_validate(self.base).root

        assert isinstance(data, PatientRegister)
        assert data.username == "newuser"
        assert data.email == "new.user@example.com"
        assert isinstance(data.to_profile(), PatientProfile)

    def test_doctor_requires_professional_fields(self):
        with pytest.raises(ValidationError):
            UserRegister.model_validate({**self.base, "role": "doctor"})

    def test_doctor_registration(self):
        data = UserRegister.model_validate(
            {
                **self.base,
                "role": "doctor",
                "specialization": "Cardiology",
                "licenseNumber": "MD-1234",
                "experience": 12,
            }
        ).root

        assert isinstance(data, DoctorRegister)
        profile = data.to_profile()
        assert isinstance(profile, DoctorProfile)
        assert profile.license_number == "MD-1234"
        assert profile.registration_message.startswith("Doctor registered")

    def test_admin_role_cannot_self_register(self):
        with pytest.raises(ValidationError) as exc_info:
            UserRegister.model_validate({**self.base, "role": "admin"})

        assert "Invalid role" in str(exc_info.value)

    def test_base_registration_is_abstract(self):
        with pytest.raises(TypeError):
            RegisterBase(
                username="newuser",
                email="new.user@example.com",
                full_name="New User",
                password="Secret123!",
            )

    def test_short_password_rejected(self):
        with pytest.raises(ValidationError):
            UserRegister.model_validate({**self.base, "password": "123"})


class TestLoginRequest:
    def test_needs_username_or_email(self):
        with pytest.raises(ValidationError):
            LoginRequest.model_validate({"password": "x"})

    def test_identifier_prefers_email_and_lowercases(self):
        data = LoginRequest.model_validate(
            {"username": "someone", "email": "Someone@Example.com", "password": "x"}
        )

        assert data.identifier == "someone@example.com"


class TestShareSchemas:
    def test_share_create_normalises_email(self):
        data = ShareCreate.model_validate(
            {"predictionId": str(uuid.uuid4()), "doctorEmail": "Dr.Who@Example.com"}
        )

        assert data.doctor_email == "dr.who@example.com"

    def test_share_message_limited_to_500_chars(self):
        with pytest.raises(ValidationError):
            ShareCreate.model_validate(
                {
                    "predictionId": str(uuid.uuid4()),
                    "doctorEmail": "doc@example.com",
                    "message": "x" * 501,
                }
            )

    def test_doctor_response_accepts_response_key(self):
        data = DoctorResponseCreate.model_validate(
            {"response": "Looks fine", "followUpRequired": True}
        )

        assert data.message == "Looks fine"
        assert data.follow_up_required is True
        assert data.recommendations == []


class TestPagination:
    @pytest.mark.parametrize(
        "page,limit,total,pages,has_next,has_prev",
        [
            (1, 10, 0, 0, False, False),
            (1, 10, 10, 1, False, False),
            (1, 10, 11, 2, True, False),
            (2, 10, 11, 2, False, True),
            (3, 5, 30, 6, True, True),
        ],
    )
    def test_build(self, page, limit, total, pages, has_next, has_prev):
        pagination = Pagination.build(page, limit, total)

        assert pagination.total_pages == pages
        assert pagination.total_items == total
        assert pagination.has_next_page is has_next
        assert pagination.has_prev_page is has_prev


class TestApiResponse:
    def test_status_code_serialised_as_camel_case(self):
        body = ApiResponse(message="ok", data={"a": 1}).model_dump(by_alias=True)

        assert body == {
            "success": True,
            "statusCode": 200,
            "message": "ok",
            "data": {"a": 1},
        }


class TestProfiles:
    def test_doctor_display_name(self):
        user = User(
            username="doc",
            email="doc@example.com",
            full_name="Gregory House",
            hashed_password="x",
            role=UserRole.DOCTOR,
            specialization="Diagnostics",
            license_number="MD-1",
            experience=20,
        )

        profile = profile_for(user)

        assert profile.display_name(user.full_name) == "Dr. Gregory House"
        assert profile.dashboard_path == "/doctor/dashboard"

    def test_patient_display_name(self):
        user = User(
            username="pat",
            email="pat@example.com",
            full_name="Pat Smith",
            hashed_password="x",
            role=UserRole.USER,
        )

        assert profile_for(user).display_name("Pat Smith") == "Pat Smith"
