# src/models/__init__.py
"""
Models initialization file to handle circular dependencies
"""

# Import all models first
from .user import User, UserRole
from .prediction import Prediction, RiskLevel
from .shared_prediction import SharedPrediction, ShareStatus

from sqlalchemy.orm import configure_mappers

# Configure all mappers
configure_mappers()

__all__ = [
    "User",
    "UserRole",
    "Prediction",
    "RiskLevel",
    "SharedPrediction",
    "ShareStatus",
]
