"""Database models for the LTI apps service."""

from .base import Base
from .account import Account, Course, ScopeMembership, UserAccountAssociation
from .lti import (
    DeveloperKey,
    DeveloperKeyAccountBinding,
    ToolConfiguration,
    ContextExternalTool,
    ToolProxy,
    ContentRestriction,
)

__all__ = [
    "Base",
    "Account",
    "Course",
    "ScopeMembership",
    "UserAccountAssociation",
    "DeveloperKey",
    "DeveloperKeyAccountBinding",
    "ToolConfiguration",
    "ContextExternalTool",
    "ToolProxy",
    "ContentRestriction",
]
