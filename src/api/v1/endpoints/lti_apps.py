"""LTI app listing API endpoints.

Mounted under ``/accounts/{id}`` and ``/courses/{id}`` by the v1 router.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db, get_global_db
from core.exceptions import BadRequestError
from core.security import get_current_user, get_optional_user
from schemas.lti_apps import (
    AppDefinitionListResponse,
    LaunchDefinitionsResponse,
    StructuredAppListResponse,
)
from services.lti import PLACEMENTS, LaunchAggregator, LtiDataStore, ScopeKind, ScopeRef

logger = logging.getLogger(__name__)

router = APIRouter(tags=["lti-apps"])


class ContextType(str, Enum):
    accounts = "accounts"
    courses = "courses"


CONTEXT_KINDS = {
    ContextType.accounts: ScopeKind.ACCOUNT,
    ContextType.courses: ScopeKind.COURSE,
}


async def get_lti_store(
    db: AsyncSession = Depends(get_db),
    global_db: AsyncSession = Depends(get_global_db),
) -> LtiDataStore:
    return LtiDataStore(db, global_db)


async def get_aggregator(store: LtiDataStore = Depends(get_lti_store)) -> LaunchAggregator:
    return LaunchAggregator(store)


def _scope(context_type: ContextType, context_id: str) -> ScopeRef:
    return ScopeRef(CONTEXT_KINDS[context_type], context_id)


# ── Admin listing ────────────────────────────────────────────────────────────


@router.get(
    "/{context_type}/{context_id}/lti_apps",
    response_model=Union[AppDefinitionListResponse, StructuredAppListResponse],
)
async def list_lti_apps(
    context_type: ContextType,
    context_id: str,
    lti_1_3_tool_configurations: Optional[str] = Query(
        None, description="Present to list LTI 1.3 configurations instead of installed apps"
    ),
    page: Optional[str] = Query(None, description="Bookmark returned as next_page"),
    per_page: Optional[int] = Query(None, description="Page size, capped at 100"),
    aggregator: LaunchAggregator = Depends(get_aggregator),
    current_user: Dict[str, Any] = Depends(get_current_user),
):
    """List apps installed in or available to an account or course."""
    return await aggregator.list_apps(
        _scope(context_type, context_id),
        current_user,
        structured=lti_1_3_tool_configurations is not None,
        bookmark=page,
        per_page=per_page,
    )


# ── Launch definitions ───────────────────────────────────────────────────────


@router.get(
    "/{context_type}/{context_id}/lti_apps/launch_definitions",
    response_model=LaunchDefinitionsResponse,
)
async def list_launch_definitions(
    context_type: ContextType,
    context_id: str,
    placements: Optional[List[str]] = Query(None, description="Requested placements"),
    bracketed_placements: Optional[List[str]] = Query(None, alias="placements[]", include_in_schema=False),
    page: Optional[str] = Query(None, description="Bookmark returned as next_page"),
    per_page: Optional[int] = Query(None, description="Page size, capped at 100"),
    aggregator: LaunchAggregator = Depends(get_aggregator),
    current_user: Optional[Dict[str, Any]] = Depends(get_optional_user),
):
    """List launch definitions for the requested placements.

    Accepts both ``placements=...`` and the form-style ``placements[]=...``.
    """
    placements = (placements or []) + (bracketed_placements or [])
    unknown = [placement for placement in placements if placement not in PLACEMENTS]
    if unknown:
        raise BadRequestError("Unknown placements requested", details={"placements": unknown})

    return await aggregator.list_launch_definitions(
        _scope(context_type, context_id),
        current_user,
        placements,
        bookmark=page,
        per_page=per_page,
    )
