"""Read-only data access for LTI registrations across both partitions.

The local partition holds accounts, courses, memberships and legacy
registrations. Data bound to the global account lives in the global
partition and is always read through its own session so that both reads
can be issued concurrently.
"""

import asyncio
import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from sqlalchemy import and_, literal, or_, select, tuple_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import UpstreamReadFailure
from models.account import Account, Course, ScopeMembership, UserAccountAssociation
from models.lti import (
    ContentRestriction,
    ContextExternalTool,
    DeveloperKey,
    DeveloperKeyAccountBinding,
    ToolConfiguration,
    ToolProxy,
)
from .registrations import ScopeKind, ScopeRef, SortKey

logger = logging.getLogger(__name__)

INACTIVE_TOOL_STATES = ("deleted",)
UNINSTALLED_TOOL_STATES = ("deleted", "disabled")


class Partition(str, Enum):
    LOCAL = "local"
    GLOBAL = "global"


def _scope_clause(model, scopes: Iterable[ScopeRef]):
    """Rows owned by any of ``scopes``, or shared from an account or course."""
    ids_by_kind: Dict[ScopeKind, List[str]] = {}
    for scope in scopes:
        ids_by_kind.setdefault(scope.kind, []).append(scope.id)

    clauses = [
        and_(model.context_type == kind.value, model.context_id.in_(ids))
        for kind, ids in ids_by_kind.items()
    ]
    clauses.append(and_(
        model.is_shared.is_(True),
        model.context_type.in_([kind.value for kind in ScopeKind]),
    ))
    return or_(*clauses)


class LtiDataStore:
    """Queries over accounts, credentials and registrations."""

    def __init__(self, db: AsyncSession, global_db: AsyncSession):
        self.db = db
        self.global_db = global_db

    async def _execute(self, partition: Partition, statement):
        session = self.db if partition is Partition.LOCAL else self.global_db
        try:
            return await session.execute(statement)
        except SQLAlchemyError as exc:
            logger.error(f"Read against the {partition.value} partition failed: {exc}")
            raise UpstreamReadFailure(
                f"Failed to read from the {partition.value} partition",
                partition=partition.value,
            ) from exc

    async def read_both(self, local_read, global_read):
        """Await a local and a global read concurrently.

        Both reads always run to completion; the first failure is raised
        afterwards so no partial merge is ever built.
        """
        results = await asyncio.gather(local_read, global_read, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return results

    # ── Hierarchy ────────────────────────────────────────────────────────

    async def get_account(self, account_id: str) -> Optional[Account]:
        result = await self._execute(
            Partition.LOCAL,
            select(Account).where(Account.id == account_id, Account.workflow_state != "deleted"),
        )
        return result.scalar_one_or_none()

    async def get_course(self, course_id: str) -> Optional[Course]:
        result = await self._execute(
            Partition.LOCAL,
            select(Course).where(Course.id == course_id, Course.workflow_state != "deleted"),
        )
        return result.scalar_one_or_none()

    # ── Membership ───────────────────────────────────────────────────────

    async def memberships(self, user_id: str, scopes: Sequence[ScopeRef]) -> List[ScopeMembership]:
        """Roles held by ``user_id`` in any of ``scopes``."""
        if not scopes:
            return []
        ids_by_kind: Dict[ScopeKind, List[str]] = {}
        for scope in scopes:
            ids_by_kind.setdefault(scope.kind, []).append(scope.id)
        result = await self._execute(
            Partition.LOCAL,
            select(ScopeMembership).where(
                ScopeMembership.user_id == user_id,
                or_(*[
                    and_(ScopeMembership.context_type == kind.value, ScopeMembership.context_id.in_(ids))
                    for kind, ids in ids_by_kind.items()
                ]),
            ),
        )
        return list(result.scalars().all())

    async def user_in_account(self, user_id: str, account_id: str) -> bool:
        result = await self._execute(
            Partition.LOCAL,
            select(UserAccountAssociation.id).where(
                UserAccountAssociation.user_id == user_id,
                UserAccountAssociation.account_id == account_id,
            ).limit(1),
        )
        return result.scalar_one_or_none() is not None

    # ── Legacy registrations ─────────────────────────────────────────────

    async def external_tools(
        self,
        scopes: Sequence[ScopeRef],
        after: Optional[SortKey] = None,
        limit: int = 100,
    ) -> List[ContextExternalTool]:
        """External tools visible to ``scopes``, ordered by (name, id), after ``after``."""
        query = select(ContextExternalTool).where(
            _scope_clause(ContextExternalTool, scopes),
            ContextExternalTool.workflow_state.notin_(INACTIVE_TOOL_STATES),
        )
        if after is not None:
            query = query.where(tuple_(ContextExternalTool.name, ContextExternalTool.id) > tuple_(literal(after[0]), literal(after[1])))
        query = query.order_by(ContextExternalTool.name, ContextExternalTool.id).limit(limit)
        result = await self._execute(Partition.LOCAL, query)
        return list(result.scalars().all())

    async def tool_proxies(
        self,
        scopes: Sequence[ScopeRef],
        after: Optional[SortKey] = None,
        limit: int = 100,
    ) -> List[ToolProxy]:
        """Tool proxies visible to ``scopes``, ordered by (name, id), after ``after``."""
        query = select(ToolProxy).where(
            _scope_clause(ToolProxy, scopes),
            ToolProxy.workflow_state.notin_(INACTIVE_TOOL_STATES),
        )
        if after is not None:
            query = query.where(tuple_(ToolProxy.name, ToolProxy.id) > tuple_(literal(after[0]), literal(after[1])))
        query = query.order_by(ToolProxy.name, ToolProxy.id).limit(limit)
        result = await self._execute(Partition.LOCAL, query)
        return list(result.scalars().all())

    # ── Credentials ──────────────────────────────────────────────────────

    async def _usable_key_ids(self, partition: Partition, key_ids: List[str]) -> Set[str]:
        result = await self._execute(
            partition,
            select(DeveloperKey.id).where(
                DeveloperKey.id.in_(key_ids),
                DeveloperKey.workflow_state == "active",
            ),
        )
        return set(result.scalars().all())

    async def usable_developer_key_ids(self, key_ids: Iterable[str]) -> Set[str]:
        """Ids among ``key_ids`` whose developer key is usable in either partition."""
        key_ids = sorted(set(key_ids))
        if not key_ids:
            return set()
        local, shared = await self.read_both(
            self._usable_key_ids(Partition.LOCAL, key_ids),
            self._usable_key_ids(Partition.GLOBAL, key_ids),
        )
        return local | shared

    async def structured_bindings(
        self,
        account_ids: Sequence[str],
        partition: Partition = Partition.LOCAL,
    ) -> List[Tuple[DeveloperKey, ToolConfiguration]]:
        """Developer keys bound "on" to ``account_ids`` with a structured configuration."""
        if not account_ids:
            return []
        query = (
            select(DeveloperKey, ToolConfiguration)
            .join(DeveloperKeyAccountBinding, DeveloperKeyAccountBinding.developer_key_id == DeveloperKey.id)
            .join(ToolConfiguration, ToolConfiguration.developer_key_id == DeveloperKey.id)
            .where(
                DeveloperKeyAccountBinding.account_id.in_(list(account_ids)),
                DeveloperKeyAccountBinding.workflow_state == "on",
                DeveloperKeyAccountBinding.registration_format == "structured",
            )
            .order_by(DeveloperKey.id)
        )
        result = await self._execute(partition, query)
        return [(key, config) for key, config in result.all()]

    async def installed_developer_key_ids(self, scope: ScopeRef, key_ids: Iterable[str]) -> Set[str]:
        """Ids among ``key_ids`` with an installed tool in exactly ``scope``."""
        key_ids = sorted(set(key_ids))
        if not key_ids:
            return set()
        result = await self._execute(
            Partition.LOCAL,
            select(ContextExternalTool.developer_key_id).where(
                ContextExternalTool.context_type == scope.kind.value,
                ContextExternalTool.context_id == scope.id,
                ContextExternalTool.developer_key_id.in_(key_ids),
                ContextExternalTool.workflow_state.notin_(UNINSTALLED_TOOL_STATES),
            ),
        )
        return set(result.scalars().all())

    # ── Restrictions ─────────────────────────────────────────────────────

    async def content_restrictions(
        self,
        scope: ScopeRef,
        content_type: str,
        content_ids: Sequence[str],
    ) -> List[ContentRestriction]:
        if not content_ids:
            return []
        result = await self._execute(
            Partition.LOCAL,
            select(ContentRestriction).where(
                ContentRestriction.context_type == scope.kind.value,
                ContentRestriction.context_id == scope.id,
                ContentRestriction.content_type == content_type,
                ContentRestriction.content_id.in_(list(content_ids)),
            ),
        )
        return list(result.scalars().all())
