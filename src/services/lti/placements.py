"""Projection of registrations onto requested placements."""

from typing import Dict, Iterable, List, Optional, Sequence

from schemas.lti_apps import LaunchDefinition
from .collator import PlacementVisibility
from .registrations import Registration

# Keys that steer filtering and are not part of the launch config.
FILTER_KEYS = ("visibility", "enabled")


def launch_definition(registration: Registration, placement: str) -> LaunchDefinition:
    config = registration.placements[placement]
    return LaunchDefinition(
        definition_type=registration.definition_type,
        definition_id=registration.id,
        name=registration.name,
        description=registration.description,
        placements={
            placement: {k: v for k, v in config.items() if k not in FILTER_KEYS},
        },
    )


class PlacementFilter:
    """Groups launch definitions by requested placement.

    The requested placements are a strict allow-list: no placements
    requested means an empty result.
    """

    def filter(
        self,
        registrations: Iterable[Registration],
        placements: Sequence[str],
        visibility: Optional[PlacementVisibility] = None,
    ) -> Dict[str, List[LaunchDefinition]]:
        requested = list(dict.fromkeys(placements or []))
        if not requested:
            return {}

        visibility = visibility or PlacementVisibility()
        result: Dict[str, List[LaunchDefinition]] = {placement: [] for placement in requested}
        for registration in registrations:
            for placement in requested:
                if not registration.supports(placement):
                    continue
                if not visibility.allows(registration.placements[placement]):
                    continue
                result[placement].append(launch_definition(registration, placement))
        return result
