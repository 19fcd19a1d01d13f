"""LTI app listing service.

Answers the two public queries: the administrative app listing (legacy
and installed registrations, or LTI 1.3 configurations) and the launch
definitions for a set of placements.
"""

import logging
from typing import Any, Dict, Optional, Sequence, Union

from core.config import Settings, get_settings
from core.exceptions import ForbiddenError
from schemas.lti_apps import (
    AppDefinition,
    AppDefinitionListResponse,
    LaunchDefinitionsResponse,
    StructuredAppDefinition,
    StructuredAppListResponse,
)
from .collator import BookmarkedCollator, CollationOptions
from .hierarchy import HierarchyResolver
from .permissions import PermissionGate, RoleBasedPermissionGate, select_launch_authorization
from .placements import PlacementFilter
from .registrations import Action, LegacyRegistration, Registration, ScopeRef, StructuredRegistration
from .restrictions import BlueprintRestrictionService, RestrictionStatusProvider
from .store import LtiDataStore

logger = logging.getLogger(__name__)

Actor = Optional[Dict[str, Any]]


def app_definition(
    registration: Registration,
    scope: ScopeRef,
    restriction_status: Optional[Dict[str, Any]] = None,
) -> AppDefinition:
    context = registration.context or scope
    return AppDefinition(
        app_type=registration.definition_type,
        app_id=registration.id,
        name=registration.name,
        description=registration.description,
        lti_version=registration.format.value,
        context=context.kind.value,
        context_id=context.id,
        installed_locally=context == scope,
        enabled=registration.enabled,
        is_shared=isinstance(registration, LegacyRegistration) and registration.is_shared,
        developer_key_id=registration.developer_key_id,
        placements=sorted(registration.placements),
        restriction_status=restriction_status,
    )


def structured_app_definition(registration: StructuredRegistration) -> StructuredAppDefinition:
    return StructuredAppDefinition(
        app_id=registration.id,
        name=registration.name,
        description=registration.description,
        config=registration.configuration,
        enabled=registration.installed,
    )


class LaunchAggregator:
    """Composes hierarchy resolution, sources, collation, permissions and placement filtering."""

    def __init__(
        self,
        store: LtiDataStore,
        gate: Optional[PermissionGate] = None,
        restrictions: Optional[RestrictionStatusProvider] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store
        self.resolver = HierarchyResolver(store, self.settings.GLOBAL_ACCOUNT_ID)
        self.gate = gate or RoleBasedPermissionGate(store, self.resolver)
        self.restrictions = restrictions or BlueprintRestrictionService(store)
        self.collator = BookmarkedCollator(store, self.settings)
        self.placement_filter = PlacementFilter()

    # ── Admin listing ────────────────────────────────────────────────────

    async def list_apps(
        self,
        scope: ScopeRef,
        actor: Actor,
        structured: bool = False,
        bookmark: Optional[str] = None,
        per_page: Optional[int] = None,
    ) -> Union[AppDefinitionListResponse, StructuredAppListResponse]:
        """List apps for administration of ``scope``.

        Raises:
            NotFoundError: if the scope does not exist.
            ForbiddenError: if the actor may not read ``scope`` as an admin.
            InvalidBookmarkError: if ``bookmark`` belongs to another listing.
        """
        scopes = await self.resolver.resolve(scope)
        if not await self.gate.allows(actor, scope, Action.READ_AS_ADMIN):
            logger.info(f"Denied app listing in {scope} to {_actor_id(actor)}")
            raise ForbiddenError("Not authorized to list apps in this context")

        if structured:
            return await self._structured_apps(scope)

        collection = self.collator.bookmarked_collection(scopes, None, CollationOptions(current_user=actor))
        registrations, next_page = await collection.page(bookmark, per_page)
        status = await self.restrictions.status_for(registrations, scope)
        return AppDefinitionListResponse(
            apps=[
                app_definition(registration, scope, status.get(registration.id))
                for registration in registrations
            ],
            next_page=next_page,
        )

    async def _structured_apps(self, scope: ScopeRef) -> StructuredAppListResponse:
        account = await self.resolver.owning_account(scope)
        account_scopes = await self.resolver.resolve(account)
        # Installation is checked against the requested scope, not its account.
        collection = self.collator.bookmarked_collection(
            [scope] + [s for s in account_scopes if s != scope],
            structured_only=True,
        )
        registrations = await collection.all()
        return StructuredAppListResponse(
            apps=[structured_app_definition(registration) for registration in registrations]
        )

    # ── Launch definitions ───────────────────────────────────────────────

    async def list_launch_definitions(
        self,
        scope: ScopeRef,
        actor: Actor,
        placements: Sequence[str],
        bookmark: Optional[str] = None,
        per_page: Optional[int] = None,
    ) -> LaunchDefinitionsResponse:
        """Launch definitions in ``scope`` grouped by requested placement.

        Raises:
            NotFoundError: if the scope does not exist.
            ForbiddenError: if the selected authorization strategy denies the actor.
            InvalidBookmarkError: if ``bookmark`` belongs to another listing.
        """
        placements = list(placements or [])
        scopes = await self.resolver.resolve(scope)

        authorization = select_launch_authorization(scope, placements, self.gate, self.store)
        if not await authorization.authorize(actor, scope):
            logger.info(f"Denied launch definitions in {scope} to {_actor_id(actor)}")
            raise ForbiddenError("Not authorized to list launch definitions in this context")

        admin_visible = False
        if authorization.only_visible:
            admin_visible = await self.gate.allows(actor, scope, Action.READ_AS_ADMIN)
        options = CollationOptions(
            current_user=actor,
            only_visible=authorization.only_visible,
            admin_visible=admin_visible,
        )

        # Deduplicated only after the strategy has seen the raw request.
        requested = list(dict.fromkeys(placements))
        collection = self.collator.bookmarked_collection(scopes, requested, options)
        registrations, next_page = await collection.page(bookmark, per_page)
        return LaunchDefinitionsResponse(
            placements=self.placement_filter.filter(registrations, requested, options.visibility),
            next_page=next_page,
        )


def _actor_id(actor: Actor) -> str:
    return str(actor["id"]) if actor else "anonymous"
