"""Pytest configuration for tests."""

import os
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["GLOBAL_ACCOUNT_ID"] = "site-admin"

from models import (  # noqa: E402
    Account,
    Base,
    ContentRestriction,
    ContextExternalTool,
    Course,
    DeveloperKey,
    DeveloperKeyAccountBinding,
    ScopeMembership,
    ToolConfiguration,
    ToolProxy,
    UserAccountAssociation,
)
from services.lti import LtiDataStore, ScopeRef  # noqa: E402

GLOBAL_ACCOUNT_ID = "site-admin"


def tool_configuration(key_id: str, title: str, placements=("course_navigation",)) -> ToolConfiguration:
    """Structured configuration declaring ``placements``."""
    return ToolConfiguration(
        id=f"cfg-{key_id}",
        developer_key_id=key_id,
        settings={
            "title": title,
            "description": f"{title} description",
            "target_link_uri": f"https://{key_id}.example/launch",
            "extensions": [
                {
                    "platform": "lms.example",
                    "settings": {
                        "placements": [
                            {"placement": placement, "text": title} for placement in placements
                        ],
                    },
                }
            ],
        },
    )


def local_rows():
    """Hierarchy, memberships and registrations of the local partition.

    root ── sub ── course-1
    other (unrelated, holds one shared tool)
    """
    return [
        Account(id="root", name="Root Account", parent_account_id=None, workflow_state="active"),
        Account(id="sub", name="Sub Account", parent_account_id="root", workflow_state="active"),
        Account(id="other", name="Other Account", parent_account_id=None, workflow_state="active"),
        Course(id="course-1", name="Biology 101", account_id="sub", workflow_state="available"),

        ScopeMembership(user_id="u-admin", context_type="Account", context_id="root", role="account_admin"),
        ScopeMembership(user_id="u-teacher", context_type="Course", context_id="course-1", role="teacher"),
        ScopeMembership(user_id="u-student", context_type="Course", context_id="course-1", role="student"),
        ScopeMembership(user_id="u-site", context_type="Account", context_id=GLOBAL_ACCOUNT_ID, role="account_admin"),
        UserAccountAssociation(user_id="u-member", account_id="root"),
        UserAccountAssociation(user_id="u-student", account_id="sub"),

        ContextExternalTool(
            id="et-alpha", name="Alpha", context_type="Account", context_id="root",
            workflow_state="public", is_shared=False, url="https://alpha.example/launch",
            settings={
                "course_navigation": {"text": "Alpha"},
                "account_navigation": {"url": "https://alpha.example/account"},
            },
        ),
        ContextExternalTool(
            id="et-beta", name="Beta", context_type="Course", context_id="course-1",
            workflow_state="public", is_shared=False, url="https://beta.example/launch",
            settings={"course_navigation": {"text": "Beta", "visibility": "admins"}},
        ),
        ContextExternalTool(
            id="et-delta", name="Delta", context_type="Account", context_id="sub",
            workflow_state="disabled", is_shared=False, url="https://delta.example/launch",
            settings={"course_navigation": {}},
        ),
        ContextExternalTool(
            id="et-gamma", name="Gamma", context_type="Account", context_id="other",
            workflow_state="public", is_shared=False, url="https://gamma.example/launch",
            settings={"course_navigation": {}},
        ),
        ContextExternalTool(
            id="et-shared", name="Shared", context_type="Account", context_id="other",
            workflow_state="public", is_shared=True, url="https://shared.example/launch",
            settings={"editor_button": {"icon_url": "https://shared.example/icon.png"}},
        ),
        ContextExternalTool(
            id="et-nav", name="Navigator", context_type="Account", context_id="root",
            workflow_state="public", is_shared=False, url="https://nav.example/launch",
            settings={"global_navigation": {"text": "Navigator"}},
        ),
        ContextExternalTool(
            id="et-installed", name="Installed 1.3", context_type="Course", context_id="course-1",
            developer_key_id="dk-local", workflow_state="public", is_shared=False,
            settings={"course_navigation": {"target_link_uri": "https://dk-local.example/launch"}},
        ),
        ContextExternalTool(
            id="et-stale", name="Stale", context_type="Account", context_id="root",
            developer_key_id="dk-inactive", workflow_state="public", is_shared=False,
            settings={"course_navigation": {}},
        ),
        ContextExternalTool(
            id="et-site", name="Site Tool", context_type="Account", context_id=GLOBAL_ACCOUNT_ID,
            workflow_state="public", is_shared=False, url="https://site.example/launch",
            settings={"course_navigation": {}},
        ),
        ContextExternalTool(
            id="et-removed", name="Removed", context_type="Account", context_id="root",
            workflow_state="deleted", is_shared=False, settings={"course_navigation": {}},
        ),
        ToolProxy(
            id="tp-proxy", name="Proxy", context_type="Account", context_id="sub",
            workflow_state="active", is_shared=False, base_url="https://proxy.example/",
            resource_placements=[
                {"placement": "course_navigation", "label": "Proxy Nav", "launch_path": "/launch"},
            ],
        ),

        DeveloperKey(id="dk-local", name="Local Key", workflow_state="active"),
        DeveloperKey(id="dk-ancestor", name="Ancestor Key", workflow_state="active"),
        DeveloperKey(id="dk-inactive", name="Retired Key", workflow_state="inactive"),
        DeveloperKey(id="dk-unbound", name="Unbound Key", workflow_state="active"),
        DeveloperKeyAccountBinding(
            id="b-local", developer_key_id="dk-local", account_id="root",
            workflow_state="on", registration_format="structured",
        ),
        DeveloperKeyAccountBinding(
            id="b-ancestor", developer_key_id="dk-ancestor", account_id="root",
            workflow_state="on", registration_format="structured",
        ),
        DeveloperKeyAccountBinding(
            id="b-inactive", developer_key_id="dk-inactive", account_id="root",
            workflow_state="on", registration_format="structured",
        ),
        DeveloperKeyAccountBinding(
            id="b-unbound", developer_key_id="dk-unbound", account_id="root",
            workflow_state="off", registration_format="structured",
        ),
        tool_configuration("dk-local", "Local Tool"),
        tool_configuration("dk-ancestor", "Ancestor Tool"),
        tool_configuration("dk-inactive", "Retired Tool"),
        tool_configuration("dk-unbound", "Unbound Tool"),

        ContentRestriction(
            id="cr-beta", context_type="Course", context_id="course-1",
            content_type="ContextExternalTool", content_id="et-beta", role="child",
            restrictions={"content": True, "settings": False},
        ),
    ]


def global_rows():
    """Credentials bound to the global account, held in the global partition."""
    return [
        DeveloperKey(id="dk-global", name="Global Key", workflow_state="active"),
        DeveloperKeyAccountBinding(
            id="b-global", developer_key_id="dk-global", account_id=GLOBAL_ACCOUNT_ID,
            workflow_state="on", registration_format="structured",
        ),
        tool_configuration("dk-global", "Global Tool", placements=("course_navigation", "global_navigation")),
    ]


async def _create_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


async def _seed(engine, rows) -> None:
    async with async_sessionmaker(engine, expire_on_commit=False)() as session:
        session.add_all(rows)
        await session.commit()


@pytest.fixture
async def local_engine():
    """In-memory database standing in for the local partition."""
    engine = await _create_engine()
    await _seed(engine, local_rows())
    yield engine
    await engine.dispose()


@pytest.fixture
async def global_engine():
    """In-memory database standing in for the global partition."""
    engine = await _create_engine()
    await _seed(engine, global_rows())
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(local_engine) -> AsyncGenerator[AsyncSession, None]:
    """Fresh local partition session for each test."""
    async with async_sessionmaker(local_engine, class_=AsyncSession, expire_on_commit=False)() as session:
        yield session


@pytest.fixture
async def global_db(global_engine) -> AsyncGenerator[AsyncSession, None]:
    """Fresh global partition session for each test."""
    async with async_sessionmaker(global_engine, class_=AsyncSession, expire_on_commit=False)() as session:
        yield session


@pytest.fixture
def store(db, global_db) -> LtiDataStore:
    return LtiDataStore(db, global_db)


@pytest.fixture
def scopes():
    """Scope references used throughout the seeded hierarchy."""
    return SimpleNamespace(
        root=ScopeRef.account("root"),
        sub=ScopeRef.account("sub"),
        other=ScopeRef.account("other"),
        course=ScopeRef.course("course-1"),
        site=ScopeRef.account(GLOBAL_ACCOUNT_ID),
    )


@pytest.fixture
def actors():
    """Actor dicts in the shape produced by token verification."""
    def actor(user_id, is_superuser=False):
        return {"id": user_id, "username": user_id, "is_superuser": is_superuser, "roles": ["user"]}

    return SimpleNamespace(
        admin=actor("u-admin"),
        teacher=actor("u-teacher"),
        student=actor("u-student"),
        member=actor("u-member"),
        site_admin=actor("u-site"),
        outsider=actor("u-outsider"),
        superuser=actor("u-root", is_superuser=True),
    )
