"""Merging of registration sources into one bookmark-paginated sequence."""

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

from core.config import Settings, get_settings
from .bookmarks import BookmarkCodec, Positions, composition_fingerprint
from .registrations import Registration, ScopeRef
from .sources import ExternalToolSource, RegistrationSource, StructuredToolSource, ToolProxySource
from .store import LtiDataStore

logger = logging.getLogger(__name__)


@dataclass
class PlacementVisibility:
    """Decides whether a placement config may be shown to the current actor."""
    only_visible: bool = False
    admin_visible: bool = False

    def allows(self, config: Dict[str, Any]) -> bool:
        if not self.only_visible:
            return True
        visibility = config.get("visibility")
        if visibility == "admins":
            return self.admin_visible
        # "members" placements: the actor already passed the read check
        return True


@dataclass
class CollationOptions:
    """Per-request collation options."""
    current_user: Optional[Dict[str, Any]] = None
    only_visible: bool = False
    admin_visible: bool = False

    @property
    def visibility(self) -> PlacementVisibility:
        return PlacementVisibility(self.only_visible, self.admin_visible)


class BookmarkedCollection:
    """A lazily merged, totally ordered view over several sources.

    Order is (name, id) with ties between sources broken by source order.
    Bookmarks store the last consumed key per source, so resuming never
    re-scans earlier rows and never skips or repeats a registration as
    long as the underlying data is unchanged.
    """

    def __init__(
        self,
        sources: Sequence[RegistrationSource],
        fingerprint: str,
        placements: Optional[Sequence[str]] = None,
        options: Optional[CollationOptions] = None,
        default_per_page: int = 10,
        max_per_page: int = 100,
    ):
        self.sources = list(sources)
        self.placements = None if placements is None else list(placements)
        self.options = options or CollationOptions()
        self.default_per_page = default_per_page
        self.max_per_page = max_per_page
        self._rank = {source.name: rank for rank, source in enumerate(self.sources)}
        self.codec = BookmarkCodec(fingerprint, self._rank)

    def accepts(self, registration: Registration) -> bool:
        """Whether ``registration`` belongs in this collection."""
        if self.placements is None:
            return True
        if not registration.enabled:
            return False
        visibility = self.options.visibility
        return any(
            registration.supports(placement) and visibility.allows(registration.placements[placement])
            for placement in self.placements
        )

    def page_size(self, requested: Optional[int]) -> int:
        if not requested or requested < 1:
            requested = self.default_per_page
        return min(requested, self.max_per_page)

    async def _merge(self, positions: Positions) -> AsyncIterator[Tuple[str, Registration]]:
        iterators = {source.name: source.iterate(positions.get(source.name)) for source in self.sources}
        heads: Dict[str, Registration] = {}

        async def advance(name: str) -> None:
            try:
                heads[name] = await iterators[name].__anext__()
            except StopAsyncIteration:
                heads.pop(name, None)

        try:
            for name in iterators:
                await advance(name)
            while heads:
                name = min(heads, key=lambda n: (heads[n].sort_key, self._rank[n]))
                registration = heads[name]
                await advance(name)
                yield name, registration
        finally:
            for iterator in iterators.values():
                await iterator.aclose()

    async def page(
        self,
        bookmark: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Registration], Optional[str]]:
        """One page of registrations and the bookmark of the next page, if any.

        Raises:
            InvalidBookmarkError: if ``bookmark`` was not produced by this composition.
        """
        limit = self.page_size(limit)
        positions = self.codec.decode(bookmark) if bookmark else {}

        items: List[Registration] = []
        has_more = False
        merged = self._merge(dict(positions))
        try:
            async for name, registration in merged:
                if not self.accepts(registration):
                    if len(items) < limit:
                        positions[name] = registration.sort_key
                    continue
                if len(items) == limit:
                    has_more = True
                    break
                items.append(registration)
                positions[name] = registration.sort_key
        finally:
            await merged.aclose()

        logger.debug(f"Collated page of {len(items)} registrations (more: {has_more})")
        return items, self.codec.encode(positions) if has_more else None

    async def __aiter__(self) -> AsyncIterator[Registration]:
        merged = self._merge({})
        try:
            async for _, registration in merged:
                if self.accepts(registration):
                    yield registration
        finally:
            await merged.aclose()

    async def all(self) -> List[Registration]:
        return [registration async for registration in self]


class BookmarkedCollator:
    """Builds bookmarked collections over the registration sources."""

    def __init__(self, store: LtiDataStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def bookmarked_collection(
        self,
        scopes: Sequence[ScopeRef],
        placements: Optional[Sequence[str]] = None,
        options: Optional[CollationOptions] = None,
        structured_only: bool = False,
    ) -> BookmarkedCollection:
        """Collection of registrations visible to ``scopes`` (requested scope first).

        ``placements=None`` means no placement restriction; an empty list
        admits nothing.
        """
        options = options or CollationOptions()
        batch_size = self.settings.LTI_SOURCE_BATCH_SIZE
        if placements is not None and not placements:
            sources: List[RegistrationSource] = []
        elif structured_only:
            sources = [StructuredToolSource(self.store, scopes, self.settings.GLOBAL_ACCOUNT_ID)]
        else:
            sources = [
                ExternalToolSource(self.store, scopes, batch_size),
                ToolProxySource(self.store, scopes, batch_size),
            ]

        fingerprint = composition_fingerprint(
            sources=[source.name for source in sources],
            scopes=[str(scope) for scope in scopes],
            placements=None if placements is None else sorted(set(placements)),
            only_visible=options.only_visible,
            admin_visible=options.admin_visible,
        )
        return BookmarkedCollection(
            sources,
            fingerprint,
            placements=placements,
            options=options,
            default_per_page=self.settings.LTI_DEFAULT_PER_PAGE,
            max_per_page=self.settings.LTI_MAX_PER_PAGE,
        )
