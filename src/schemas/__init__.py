# src/schemas/__init__.py
from .base_schemas import *
from .profile_schemas import *
from .user_schemas import *
from .prediction_schemas import *
from .shared_prediction_schemas import *
from .email_schemas import *
