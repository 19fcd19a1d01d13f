"""Organizational hierarchy models.

Accounts form a strict ownership tree through ``parent_account_id``.
Courses are sub-units owned by exactly one account. The global ("site
admin") account is configured by id and is never anyone's parent.
"""

from typing import Optional
from sqlalchemy import String, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDMixin, TimestampMixin


class Account(Base, UUIDMixin, TimestampMixin):
    """An account or sub-account."""
    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_account_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("accounts.id"),
        nullable=True,
        index=True,
        comment="NULL for root accounts"
    )
    workflow_state: Mapped[str] = mapped_column(
        String(20),
        default="active",
        nullable=False,
        comment="active, deleted"
    )

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, name={self.name})>"


class Course(Base, UUIDMixin, TimestampMixin):
    """A course, owned by one account."""
    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id"),
        nullable=False,
        index=True
    )
    workflow_state: Mapped[str] = mapped_column(
        String(20),
        default="available",
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, account_id={self.account_id})>"


class ScopeMembership(Base, UUIDMixin, TimestampMixin):
    """A user's role in an account or course."""
    __tablename__ = "scope_memberships"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    context_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Account, Course"
    )
    context_id: Mapped[str] = mapped_column(String(36), nullable=False)
    role: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="account_admin, teacher, student"
    )

    __table_args__ = (
        Index("ix_scope_memberships_user_context", "user_id", "context_type", "context_id"),
    )


class UserAccountAssociation(Base, UUIDMixin):
    """Records that a user belongs to an account (directly or through a course)."""
    __tablename__ = "user_account_associations"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    account_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("accounts.id"),
        nullable=False
    )

    __table_args__ = (
        Index("ix_user_account_associations_user_account", "user_id", "account_id", unique=True),
    )
