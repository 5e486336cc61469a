# ruff: noqa: F403, F401
"""Schemas package initialization."""

# Import all schemas to ensure they're registered
from .base import *
from .chat import *
from .user import *

# Rebuild models after all schemas are loaded
ConversationDetailResponse.model_rebuild()
