# src/schemas/prediction_schemas.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID
from pydantic import Field, field_validator
from models.prediction import RiskLevel
from .base_schemas import BaseSchema, RequestSchema, TimestampMixin, IDMixin


SortField = Literal["timestamp", "created_at", "confidence", "risk_level"]
SortOrder = Literal["asc", "desc"]


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Severity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class ClinicalInputs(RequestSchema):
    """Vitals and history captured alongside the symptoms"""

    age: int = Field(..., ge=0, le=120)
    gender: Gender
    systolic_bp: Optional[int] = Field(None, ge=80, le=200)
    diastolic_bp: Optional[int] = Field(None, ge=40, le=130)
    cholesterol: Optional[int] = Field(None, ge=100, le=600)
    heart_rate: Optional[int] = Field(None, ge=30, le=220)
    blood_sugar: Optional[int] = Field(None, ge=50, le=400)
    duration: Optional[str] = Field(None, max_length=50)
    severity: Optional[Severity] = None


class PredictionResult(RequestSchema):
    prediction: str = Field(..., min_length=1, max_length=255)
    result_class: int = Field(..., ge=0, le=1)
    confidence: float = Field(..., ge=0.0, le=1.0)
    risk_level: RiskLevel = RiskLevel.LOW
    recommendations: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=2000)


class PredictionCreate(RequestSchema):
    """Schema for storing a prediction"""

    symptoms: List[str] = Field(..., min_length=1, max_length=50)
    clinical_inputs: ClinicalInputs
    result: PredictionResult
    model_response: Optional[Dict[str, Any]] = None

    @field_validator("symptoms")
    @classmethod
    def validate_symptoms(cls, v: List[str]) -> List[str]:
        cleaned = [symptom.strip() for symptom in v]
        if any(not symptom for symptom in cleaned):
            raise ValueError("Symptoms must not be blank")
        return cleaned


class PredictionListParams(BaseSchema):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    sort_by: SortField = "timestamp"
    sort_order: SortOrder = "desc"


class PredictionPublic(IDMixin, TimestampMixin):
    """Stored prediction as returned to its owner"""

    user_id: UUID
    symptoms: List[str]
    clinical_inputs: Dict[str, Any]
    prediction: str
    result_class: int
    confidence: float
    risk_level: RiskLevel
    recommendations: List[str] = []
    notes: Optional[str] = None
    model_response: Optional[Dict[str, Any]] = None
    timestamp: datetime


class PredictionSummary(BaseSchema):
    """Prediction fields a doctor sees on a shared record"""

    id: UUID
    symptoms: List[str]
    clinical_inputs: Dict[str, Any]
    prediction: str
    result_class: int
    confidence: float
    risk_level: RiskLevel
    recommendations: List[str] = []
    notes: Optional[str] = None
    timestamp: datetime


class PredictionStats(BaseSchema):
    total_predictions: int
    this_month_predictions: int
    avg_confidence: float
    risk_distribution: Dict[str, int]
