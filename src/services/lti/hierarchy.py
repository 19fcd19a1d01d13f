"""Resolution of a scope into the set of scopes whose registrations it sees."""

import logging
from typing import List

from core.exceptions import NotFoundError
from .registrations import ScopeRef
from .store import LtiDataStore

logger = logging.getLogger(__name__)


class HierarchyResolver:
    """Walks the ownership chain of an account or course.

    The global account is unioned into every resolution; it is never
    reached by walking parents.
    """

    def __init__(self, store: LtiDataStore, global_account_id: str):
        self.store = store
        self.global_scope = ScopeRef.account(global_account_id)

    async def owning_account(self, scope: ScopeRef) -> ScopeRef:
        """The scope itself for accounts, the owning account for courses."""
        if scope.is_account:
            return scope
        course = await self.store.get_course(scope.id)
        if course is None:
            raise NotFoundError(f"Course {scope.id} not found")
        return ScopeRef.account(course.account_id)

    async def chain(self, scope: ScopeRef) -> List[ScopeRef]:
        """``scope`` followed by every proper ancestor, nearest first."""
        if scope == self.global_scope:
            return [scope]

        chain = [scope]
        account = await self.owning_account(scope)
        if not scope.is_account:
            chain.append(account)

        seen = {account.id}
        record = await self.store.get_account(account.id)
        if record is None:
            raise NotFoundError(f"Account {account.id} not found")

        while record.parent_account_id is not None:
            parent_id = record.parent_account_id
            if parent_id in seen:
                raise ValueError(f"Account hierarchy cycle at {parent_id}")
            seen.add(parent_id)
            record = await self.store.get_account(parent_id)
            if record is None:
                raise ValueError(f"Account {parent_id} referenced as parent does not exist")
            chain.append(ScopeRef.account(parent_id))
        return chain

    async def resolve(self, scope: ScopeRef) -> List[ScopeRef]:
        """``scope``, its ancestors and the global scope, each exactly once.

        The requested scope is always first.
        """
        resolved = list(dict.fromkeys(await self.chain(scope)))
        if self.global_scope not in resolved:
            resolved.append(self.global_scope)
        logger.debug(f"Resolved {scope} to {len(resolved)} scopes")
        return resolved
