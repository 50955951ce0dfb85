# src/routes/__init__.py
from .users import router as users_router
from .predictions import router as predictions_router
from .shared_predictions import router as shared_predictions_router

__all__ = [
    "users_router",
    "predictions_router",
    "shared_predictions_router",
]
