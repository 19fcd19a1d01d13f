"""Blueprint restriction status for legacy registrations in the admin listing."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence

from .registrations import LegacyRegistration, Registration, ScopeRef
from .store import LtiDataStore

logger = logging.getLogger(__name__)

EXTERNAL_TOOL = "ContextExternalTool"


class RestrictionStatusProvider(ABC):
    """Computes an opaque status per registration id."""

    @abstractmethod
    async def status_for(
        self,
        registrations: Sequence[Registration],
        scope: ScopeRef,
    ) -> Dict[str, Dict[str, Any]]:
        pass


class BlueprintRestrictionService(RestrictionStatusProvider):
    """Reports master/child blueprint restrictions on external tools."""

    def __init__(self, store: LtiDataStore):
        self.store = store

    async def status_for(
        self,
        registrations: Sequence[Registration],
        scope: ScopeRef,
    ) -> Dict[str, Dict[str, Any]]:
        tool_ids = [
            registration.id for registration in registrations
            if isinstance(registration, LegacyRegistration) and registration.record_type == EXTERNAL_TOOL
        ]
        if not tool_ids:
            return {}

        status: Dict[str, Dict[str, Any]] = {}
        for row in await self.store.content_restrictions(scope, EXTERNAL_TOOL, tool_ids):
            restrictions = row.restrictions or {}
            if row.role == "master":
                status[row.content_id] = {
                    "is_master_course_master_content": True,
                    "restrictions": restrictions,
                }
            else:
                status[row.content_id] = {
                    "is_master_course_child_content": True,
                    "restricted_by_master_course": any(restrictions.values()),
                    "restrictions": restrictions,
                }
        return status
