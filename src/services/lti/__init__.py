"""
LTI Apps Services

Aggregation of legacy and structured LTI registrations into permission
checked, bookmark-paginated app listings and launch definitions.
"""

from .aggregator import LaunchAggregator
from .collator import BookmarkedCollator, BookmarkedCollection, CollationOptions
from .hierarchy import HierarchyResolver
from .permissions import (
    MembershipOnlyGate,
    NormalGate,
    PermissionGate,
    RoleBasedPermissionGate,
    select_launch_authorization,
)
from .placements import PlacementFilter
from .registrations import (
    Action,
    GLOBAL_NAVIGATION,
    PLACEMENTS,
    LegacyRegistration,
    Registration,
    RegistrationFormat,
    ScopeKind,
    ScopeRef,
    StructuredRegistration,
)
from .restrictions import BlueprintRestrictionService, RestrictionStatusProvider
from .store import LtiDataStore

__all__ = [
    'LaunchAggregator',
    'BookmarkedCollator',
    'BookmarkedCollection',
    'CollationOptions',
    'HierarchyResolver',
    'PermissionGate',
    'RoleBasedPermissionGate',
    'NormalGate',
    'MembershipOnlyGate',
    'select_launch_authorization',
    'PlacementFilter',
    'Action',
    'GLOBAL_NAVIGATION',
    'PLACEMENTS',
    'Registration',
    'LegacyRegistration',
    'StructuredRegistration',
    'RegistrationFormat',
    'ScopeKind',
    'ScopeRef',
    'BlueprintRestrictionService',
    'RestrictionStatusProvider',
    'LtiDataStore',
]
