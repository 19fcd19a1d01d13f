"""LTI registration models.

Covers both generations of integration metadata: legacy registrations
(LTI 1.1 external tools and LTI 2.0 tool proxies) and structured
configurations (LTI 1.3) owned by a developer key. An LTI 1.3 key is
installed into a context as a ContextExternalTool carrying its
``developer_key_id``.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Text, JSON, DateTime, Boolean,
    ForeignKey, Index,
)
from models.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class DeveloperKey(Base):
    """Issuer credential for LTI registrations."""

    __tablename__ = "developer_keys"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    workflow_state = Column(String(20), nullable=False, server_default="active")  # active, inactive, deleted

    created_at = Column(DateTime, default=datetime.utcnow)

    @property
    def usable(self) -> bool:
        return self.workflow_state == "active"


class DeveloperKeyAccountBinding(Base):
    """Enables or disables a developer key for an account."""

    __tablename__ = "developer_key_account_bindings"

    id = Column(String, primary_key=True, default=_uuid)
    developer_key_id = Column(String, ForeignKey("developer_keys.id"), nullable=False)
    account_id = Column(String(36), nullable=False)
    workflow_state = Column(String(20), nullable=False, server_default="off")  # on, off, allow
    registration_format = Column(String(20), nullable=False, server_default="structured")  # legacy, structured

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_dev_key_bindings_account", "account_id", "registration_format"),
        Index("ix_dev_key_bindings_key", "developer_key_id"),
        {"extend_existing": True},
    )


class ToolConfiguration(Base):
    """LTI 1.3 structured configuration, one per developer key."""

    __tablename__ = "lti_tool_configurations"

    id = Column(String, primary_key=True, default=_uuid)
    developer_key_id = Column(String, ForeignKey("developer_keys.id"), nullable=False, unique=True)
    settings = Column(JSON, default={})

    created_at = Column(DateTime, default=datetime.utcnow)


class ContextExternalTool(Base):
    """An LTI 1.1 tool, or an installed instance of an LTI 1.3 key."""

    __tablename__ = "context_external_tools"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    context_type = Column(String(20), nullable=False)  # Account, Course
    context_id = Column(String(36), nullable=False)
    developer_key_id = Column(String, nullable=True)
    workflow_state = Column(String(20), nullable=False, server_default="public")  # public, anonymous, name_only, disabled, deleted
    is_shared = Column(Boolean, nullable=False, default=False)
    url = Column(String(2048), nullable=True)
    settings = Column(JSON, default={})  # placement name -> placement config

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_context_external_tools_context", "context_type", "context_id"),
        Index("ix_context_external_tools_name_id", "name", "id"),
        Index("ix_context_external_tools_dev_key", "developer_key_id"),
        {"extend_existing": True},
    )


class ToolProxy(Base):
    """An LTI 2.0 tool proxy registration."""

    __tablename__ = "lti_tool_proxies"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    context_type = Column(String(20), nullable=False)
    context_id = Column(String(36), nullable=False)
    workflow_state = Column(String(20), nullable=False, server_default="active")  # active, disabled, deleted
    is_shared = Column(Boolean, nullable=False, default=False)
    base_url = Column(String(2048), nullable=True)
    resource_placements = Column(JSON, default=[])  # [{placement, label, launch_path, icon}]

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_lti_tool_proxies_context", "context_type", "context_id"),
        Index("ix_lti_tool_proxies_name_id", "name", "id"),
        {"extend_existing": True},
    )


class ContentRestriction(Base):
    """Blueprint course restriction attached to a piece of content."""

    __tablename__ = "content_restrictions"

    id = Column(String, primary_key=True, default=_uuid)
    context_type = Column(String(20), nullable=False)
    context_id = Column(String(36), nullable=False)
    content_type = Column(String(50), nullable=False)  # ContextExternalTool
    content_id = Column(String, nullable=False)
    role = Column(String(20), nullable=False)  # master, child
    restrictions = Column(JSON, default={})

    __table_args__ = (
        Index("ix_content_restrictions_context", "context_type", "context_id", "content_type"),
        {"extend_existing": True},
    )
