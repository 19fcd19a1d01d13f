"""Core functionality for the LTI apps service."""

from .config import get_settings
from .database import get_db, get_global_db, get_session_maker
from models.base import Base
from .security import (
    get_current_user,
    get_optional_user,
    create_access_token,
)

__all__ = [
    "get_settings",
    "Base",
    "get_db",
    "get_global_db",
    "get_session_maker",
    "get_current_user",
    "get_optional_user",
    "create_access_token",
]
