"""Permission gate and launch-definition authorization strategies.

``PermissionGate`` is the "can this actor perform this action in this
scope" capability. Launch-definition requests pick one authorization
strategy per request: ``NormalGate`` checks ``read`` through the gate,
``MembershipOnlyGate`` admits any member of the account and is chosen only
for global navigation requested on an account.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

from .hierarchy import HierarchyResolver
from .registrations import Action, GLOBAL_NAVIGATION, ScopeRef
from .store import LtiDataStore

logger = logging.getLogger(__name__)

Actor = Optional[Dict[str, Any]]

ROLE_PERMISSIONS = {
    "account_admin": {Action.READ, Action.READ_AS_ADMIN},
    "teacher": {Action.READ, Action.READ_AS_ADMIN},
    "student": {Action.READ},
}

# Roles that also apply to scopes below the one they were granted on.
INHERITED_ROLES = {"account_admin"}


class PermissionGate(ABC):
    """Authoritative, side-effect-free permission check."""

    @abstractmethod
    async def allows(self, actor: Actor, scope: ScopeRef, action: Action) -> bool:
        """Whether ``actor`` may perform ``action`` in ``scope``."""
        pass


class RoleBasedPermissionGate(PermissionGate):
    """Permission gate backed by scope memberships.

    Superusers may do anything. Account admins are granted on their
    account and everything below it (including from the global account);
    course roles apply only to their course.
    """

    def __init__(self, store: LtiDataStore, resolver: HierarchyResolver):
        self.store = store
        self.resolver = resolver

    async def allows(self, actor: Actor, scope: ScopeRef, action: Action) -> bool:
        if not actor:
            return False
        if actor.get("is_superuser"):
            return True

        scopes = await self.resolver.resolve(scope)
        memberships = await self.store.memberships(str(actor["id"]), scopes)
        for membership in memberships:
            if action not in ROLE_PERMISSIONS.get(membership.role, ()):
                continue
            granted_here = (
                membership.context_type == scope.kind.value
                and membership.context_id == scope.id
            )
            if granted_here or membership.role in INHERITED_ROLES:
                return True
        return False


class LaunchAuthorization(ABC):
    """How a launch-definition request is authorized.

    ``only_visible`` says whether placement visibility restrictions apply
    to the result.
    """

    only_visible: bool = True

    @abstractmethod
    async def authorize(self, actor: Actor, scope: ScopeRef) -> bool:
        pass


class NormalGate(LaunchAuthorization):
    """Requires ``read`` permission in the scope."""

    only_visible = True

    def __init__(self, gate: PermissionGate):
        self.gate = gate

    async def authorize(self, actor: Actor, scope: ScopeRef) -> bool:
        return await self.gate.allows(actor, scope, Action.READ)


class MembershipOnlyGate(LaunchAuthorization):
    """Admits every user associated with the account.

    Global navigation must be discoverable by all members of an account,
    most of whom hold no account-level permission. Non-members still pass
    if the normal gate grants ``read``.
    """

    only_visible = False

    def __init__(self, gate: PermissionGate, store: LtiDataStore):
        self.gate = gate
        self.store = store

    async def authorize(self, actor: Actor, scope: ScopeRef) -> bool:
        if actor and await self.store.user_in_account(str(actor["id"]), scope.id):
            logger.info(f"Granting global navigation to account member {actor['id']} in {scope}")
            return True
        return await self.gate.allows(actor, scope, Action.READ)


def select_launch_authorization(
    scope: ScopeRef,
    placements: Sequence[str],
    gate: PermissionGate,
    store: LtiDataStore,
) -> LaunchAuthorization:
    """Pick the authorization strategy for a launch-definition request."""
    if scope.is_account and list(placements) == [GLOBAL_NAVIGATION]:
        return MembershipOnlyGate(gate, store)
    return NormalGate(gate)
