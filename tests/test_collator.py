"""Tests for bookmarks, collation and placement filtering."""

import pytest

from core.config import Settings
from core.exceptions import InvalidBookmarkError
from services.lti import (
    BookmarkedCollator,
    CollationOptions,
    LegacyRegistration,
    PlacementFilter,
    RegistrationFormat,
    ScopeRef,
)
from services.lti.bookmarks import BookmarkCodec, composition_fingerprint
from services.lti.collator import BookmarkedCollection, PlacementVisibility
from services.lti.sources import RegistrationSource


def registration(id, name, placements=None, enabled=True):
    return LegacyRegistration(
        id=id,
        name=name,
        format=RegistrationFormat.LTI_1_1,
        placements=placements if placements is not None else {"course_navigation": {"url": f"https://{id}.example"}},
        context=ScopeRef.account("a1"),
        enabled=enabled,
    )


class ListSource(RegistrationSource):
    """In-memory source for collation tests."""

    def __init__(self, name, registrations):
        super().__init__(None, [ScopeRef.account("a1")])
        self.name = name
        self.registrations = sorted(registrations, key=lambda r: r.sort_key)

    async def iterate(self, after=None):
        for item in self.registrations:
            if after is None or item.sort_key > tuple(after):
                yield item


def collection(sources, placements=None, options=None, fingerprint="test"):
    return BookmarkedCollection(sources, fingerprint, placements=placements, options=options)


async def all_pages(coll, limit):
    pages, bookmark = [], None
    while True:
        items, bookmark = await coll.page(bookmark, limit)
        pages.append(items)
        if bookmark is None:
            return pages


class TestBookmarkCodec:

    def test_positions_survive_encoding(self):
        codec = BookmarkCodec("fp", ["external_tools", "tool_proxies"])

        token = codec.encode({"external_tools": ("Alpha", "et-1")})

        assert codec.decode(token) == {"external_tools": ("Alpha", "et-1")}

    def test_different_composition_is_rejected(self):
        token = BookmarkCodec("fp-a", ["external_tools"]).encode({"external_tools": ("A", "1")})

        with pytest.raises(InvalidBookmarkError):
            BookmarkCodec("fp-b", ["external_tools"]).decode(token)

    def test_garbage_is_rejected(self):
        with pytest.raises(InvalidBookmarkError):
            BookmarkCodec("fp", ["external_tools"]).decode("not-a-bookmark")

    def test_forged_signature_is_rejected(self):
        token = BookmarkCodec("fp", ["external_tools"], secret_key="other-secret").encode({})

        with pytest.raises(InvalidBookmarkError):
            BookmarkCodec("fp", ["external_tools"]).decode(token)

    def test_unknown_source_is_rejected(self):
        token = BookmarkCodec("fp", ["external_tools", "tool_proxies"]).encode({"tool_proxies": ("P", "1")})

        with pytest.raises(InvalidBookmarkError):
            BookmarkCodec("fp", ["external_tools"]).decode(token)

    def test_fingerprint_depends_on_scopes(self):
        a = composition_fingerprint(sources=["external_tools"], scopes=["Account:a"])
        b = composition_fingerprint(sources=["external_tools"], scopes=["Account:b"])

        assert a != b
        assert a == composition_fingerprint(scopes=["Account:a"], sources=["external_tools"])


class TestBookmarkedCollection:
    """Merging and paging."""

    @pytest.mark.asyncio
    async def test_merges_sources_in_name_order(self):
        tools = ListSource("external_tools", [registration("t2", "Charlie"), registration("t1", "Alpha")])
        proxies = ListSource("tool_proxies", [registration("p1", "Bravo"), registration("p2", "Delta")])

        items = await collection([tools, proxies]).all()

        assert [r.name for r in items] == ["Alpha", "Bravo", "Charlie", "Delta"]

    @pytest.mark.asyncio
    async def test_ties_broken_by_id_then_source_order(self):
        tools = ListSource("external_tools", [registration("x2", "Same"), registration("x1", "Same")])
        proxies = ListSource("tool_proxies", [registration("x1", "Same")])

        items = await collection([tools, proxies]).all()

        assert [r.id for r in items] == ["x1", "x1", "x2"]
        assert items[0] is tools.registrations[0]

    @pytest.mark.asyncio
    async def test_pages_concatenate_to_full_sequence(self):
        tools = ListSource("external_tools", [registration(f"t{i:02d}", f"Tool {i:02d}") for i in range(23)])
        proxies = ListSource("tool_proxies", [registration(f"p{i:02d}", f"Proxy {i:02d}") for i in range(9)])
        coll = collection([tools, proxies])

        pages = await all_pages(coll, 5)
        flattened = [r for page in pages for r in page]

        assert [len(page) for page in pages] == [5, 5, 5, 5, 5, 5, 2]
        assert flattened == await coll.all()
        assert len({(r.name, r.id) for r in flattened}) == 32

    @pytest.mark.asyncio
    async def test_exact_multiple_has_no_trailing_bookmark(self):
        coll = collection([ListSource("external_tools", [registration(f"t{i}", f"T{i}") for i in range(4)])])

        first, bookmark = await coll.page(None, 2)
        second, bookmark = await coll.page(bookmark, 2)

        assert len(first) == len(second) == 2
        assert bookmark is None

    @pytest.mark.asyncio
    async def test_page_size_is_capped(self):
        coll = collection([ListSource("external_tools", [registration(f"t{i:03d}", f"T{i:03d}") for i in range(150)])])

        items, bookmark = await coll.page(None, 500)

        assert len(items) == 100
        assert bookmark is not None

    @pytest.mark.asyncio
    async def test_default_page_size(self):
        coll = collection([ListSource("external_tools", [registration(f"t{i:02d}", f"T{i:02d}") for i in range(15)])])

        items, _ = await coll.page()

        assert len(items) == 10

    @pytest.mark.asyncio
    async def test_bookmark_from_other_composition(self):
        make = lambda fp: collection(
            [ListSource("external_tools", [registration(f"t{i}", f"T{i}") for i in range(5)])],
            fingerprint=fp,
        )
        _, bookmark = await make("scopes-a").page(None, 2)

        with pytest.raises(InvalidBookmarkError):
            await make("scopes-b").page(bookmark, 2)

    @pytest.mark.asyncio
    async def test_placement_restriction(self):
        source = ListSource("external_tools", [
            registration("t1", "Course Tool"),
            registration("t2", "Editor Tool", placements={"editor_button": {}}),
            registration("t3", "Disabled Tool", enabled=False),
            registration("t4", "Admin Tool", placements={"course_navigation": {"visibility": "admins"}}),
        ])
        options = CollationOptions(only_visible=True, admin_visible=False)

        items = await collection([source], placements=["course_navigation"], options=options).all()

        assert [r.id for r in items] == ["t1"]

    @pytest.mark.asyncio
    async def test_filtered_paging_has_no_gaps(self):
        regs = [
            registration(f"t{i:02d}", f"T{i:02d}", placements={} if i % 3 else None)
            for i in range(20)
        ]
        coll = collection([ListSource("external_tools", regs)], placements=["course_navigation"])

        pages = await all_pages(coll, 2)

        assert [r.id for page in pages for r in page] == ["t00", "t03", "t06", "t09", "t12", "t15", "t18"]

    @pytest.mark.asyncio
    async def test_empty_placements_admit_nothing(self):
        collator = BookmarkedCollator(store=None, settings=Settings())

        coll = collator.bookmarked_collection([ScopeRef.account("a1")], placements=[])

        assert coll.sources == []
        assert await coll.page() == ([], None)


class TestPlacementFilter:

    def test_empty_placements(self):
        assert PlacementFilter().filter([registration("t1", "Tool")], []) == {}

    def test_groups_by_requested_placement(self):
        regs = [
            registration("t1", "Both", placements={
                "course_navigation": {"url": "https://t1.example/course", "enabled": True},
                "editor_button": {"url": "https://t1.example/editor"},
            }),
            registration("t2", "Editor", placements={"editor_button": {"url": "https://t2.example"}}),
        ]

        result = PlacementFilter().filter(regs, ["editor_button", "course_navigation", "link_selection"])

        assert list(result) == ["editor_button", "course_navigation", "link_selection"]
        assert [d.definition_id for d in result["editor_button"]] == ["t1", "t2"]
        assert result["course_navigation"][0].placements == {
            "course_navigation": {"url": "https://t1.example/course"},
        }
        assert result["link_selection"] == []

    def test_admin_only_placements_hidden(self):
        regs = [registration("t1", "Tool", placements={"course_navigation": {"visibility": "admins"}})]

        hidden = PlacementFilter().filter(regs, ["course_navigation"], PlacementVisibility(True, False))
        shown = PlacementFilter().filter(regs, ["course_navigation"], PlacementVisibility(True, True))

        assert hidden == {"course_navigation": []}
        assert len(shown["course_navigation"]) == 1
        assert "visibility" not in shown["course_navigation"][0].placements["course_navigation"]
