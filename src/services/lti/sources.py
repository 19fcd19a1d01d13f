"""Registration sources.

Each source enumerates registrations visible to a resolved scope set in
(name, id) order, resuming strictly after a given sort key. The legacy
sources read in keyset batches so enumeration never needs a total count.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from models.lti import ContextExternalTool, DeveloperKey, ToolConfiguration, ToolProxy
from .registrations import (
    LegacyRegistration,
    PLACEMENTS,
    Registration,
    RegistrationFormat,
    ScopeKind,
    ScopeRef,
    SortKey,
    StructuredRegistration,
)
from .store import LtiDataStore, Partition

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def _placement_config(
    config: Dict[str, Any],
    default_url: Optional[str],
    default_title: str,
    message_type: str,
) -> Dict[str, Any]:
    launch = dict(config)
    launch.pop("enabled", None)
    launch["title"] = launch.pop("text", None) or launch.get("title") or default_title
    launch["url"] = launch.pop("target_link_uri", None) or launch.get("url") or default_url
    launch.setdefault("message_type", message_type)
    return launch


def external_tool_registration(tool: ContextExternalTool) -> LegacyRegistration:
    """Convert an external tool row; tools with a developer key are LTI 1.3 installs."""
    lti_format = RegistrationFormat.LTI_1_3 if tool.developer_key_id else RegistrationFormat.LTI_1_1
    placements = {}
    for name, config in (tool.settings or {}).items():
        if name not in PLACEMENTS or not isinstance(config, dict):
            continue
        if config.get("enabled", True) is False:
            continue
        placements[name] = _placement_config(config, tool.url, tool.name, lti_format.message_type)

    return LegacyRegistration(
        id=tool.id,
        name=tool.name,
        format=lti_format,
        placements=placements,
        description=tool.description,
        context=ScopeRef(ScopeKind(tool.context_type), tool.context_id),
        enabled=tool.workflow_state != "disabled",
        developer_key_id=tool.developer_key_id,
        record_type="ContextExternalTool",
        is_shared=bool(tool.is_shared),
    )


def tool_proxy_registration(proxy: ToolProxy) -> LegacyRegistration:
    """Convert an LTI 2.0 tool proxy row."""
    placements = {}
    base_url = (proxy.base_url or "").rstrip("/")
    for resource in proxy.resource_placements or []:
        name = resource.get("placement")
        if name not in PLACEMENTS or name in placements:
            continue
        launch_path = resource.get("launch_path") or ""
        placements[name] = {
            "title": resource.get("label") or proxy.name,
            "url": f"{base_url}/{launch_path.lstrip('/')}" if base_url else launch_path or None,
            "icon_url": resource.get("icon"),
            "message_type": RegistrationFormat.LTI_2_0.message_type,
        }

    return LegacyRegistration(
        id=proxy.id,
        name=proxy.name,
        format=RegistrationFormat.LTI_2_0,
        placements=placements,
        description=proxy.description,
        context=ScopeRef(ScopeKind(proxy.context_type), proxy.context_id),
        enabled=proxy.workflow_state == "active",
        record_type="Lti::ToolProxy",
        is_shared=bool(proxy.is_shared),
    )


def structured_registration(
    key: DeveloperKey,
    configuration: ToolConfiguration,
    installed: bool,
) -> StructuredRegistration:
    """Convert a developer key's LTI 1.3 configuration into a displayable registration."""
    settings = configuration.settings or {}
    title = settings.get("title") or key.name
    target_link_uri = settings.get("target_link_uri")
    message_type = RegistrationFormat.LTI_1_3.message_type

    placements = {}
    for extension in settings.get("extensions") or []:
        for config in (extension.get("settings") or {}).get("placements") or []:
            name = config.get("placement")
            if name not in PLACEMENTS or name in placements:
                continue
            if config.get("enabled", True) is False:
                continue
            launch = {k: v for k, v in config.items() if k != "placement"}
            placements[name] = _placement_config(launch, target_link_uri, title, message_type)

    return StructuredRegistration(
        id=key.id,
        name=title,
        format=RegistrationFormat.LTI_1_3,
        placements=placements,
        description=settings.get("description"),
        enabled=installed,
        developer_key_id=key.id,
        configuration={
            "title": title,
            "description": settings.get("description"),
            "target_link_uri": target_link_uri,
            "developer_key_id": key.id,
            "placements": placements,
        },
        installed=installed,
    )


class RegistrationSource(ABC):
    """Ordered enumeration of registrations for a resolved scope set."""

    name: str = "registrations"

    def __init__(self, store: LtiDataStore, scopes: Sequence[ScopeRef]):
        if not scopes:
            raise ValueError("A registration source needs at least one scope")
        self.store = store
        self.scopes = list(scopes)

    @property
    def origin(self) -> ScopeRef:
        """The originally requested scope."""
        return self.scopes[0]

    @abstractmethod
    def iterate(self, after: Optional[SortKey] = None) -> AsyncIterator[Registration]:
        """Registrations in (name, id) order, strictly after ``after``."""
        pass

    async def list(self) -> List[Registration]:
        return [registration async for registration in self.iterate()]


class ExternalToolSource(RegistrationSource):
    """LTI 1.1 tools and installed LTI 1.3 instances.

    Tools issued by an unusable developer key are skipped.
    """

    name = "external_tools"

    def __init__(self, store: LtiDataStore, scopes: Sequence[ScopeRef], batch_size: int = DEFAULT_BATCH_SIZE):
        super().__init__(store, scopes)
        self.batch_size = batch_size

    async def iterate(self, after: Optional[SortKey] = None) -> AsyncIterator[Registration]:
        cursor = after
        while True:
            tools = await self.store.external_tools(self.scopes, after=cursor, limit=self.batch_size)
            if not tools:
                return

            key_ids = {tool.developer_key_id for tool in tools if tool.developer_key_id}
            usable = await self.store.usable_developer_key_ids(key_ids) if key_ids else set()
            for tool in tools:
                cursor = (tool.name, tool.id)
                if tool.developer_key_id and tool.developer_key_id not in usable:
                    logger.debug(f"Skipping tool {tool.id}: developer key {tool.developer_key_id} is not usable")
                    continue
                yield external_tool_registration(tool)

            if len(tools) < self.batch_size:
                return


class ToolProxySource(RegistrationSource):
    """LTI 2.0 tool proxies."""

    name = "tool_proxies"

    def __init__(self, store: LtiDataStore, scopes: Sequence[ScopeRef], batch_size: int = DEFAULT_BATCH_SIZE):
        super().__init__(store, scopes)
        self.batch_size = batch_size

    async def iterate(self, after: Optional[SortKey] = None) -> AsyncIterator[Registration]:
        cursor = after
        while True:
            proxies = await self.store.tool_proxies(self.scopes, after=cursor, limit=self.batch_size)
            for proxy in proxies:
                cursor = (proxy.name, proxy.id)
                yield tool_proxy_registration(proxy)
            if len(proxies) < self.batch_size:
                return


class StructuredToolSource(RegistrationSource):
    """LTI 1.3 configurations of developer keys bound to the scope set.

    Bindings on local accounts and on the global account are read from
    their own partitions concurrently and merged only once both reads
    have completed. ``installed`` is computed against the origin scope
    only, not against the resolved set.
    """

    name = "tool_configurations"

    def __init__(self, store: LtiDataStore, scopes: Sequence[ScopeRef], global_account_id: str):
        super().__init__(store, scopes)
        self.global_account_id = global_account_id

    async def _registrations(self) -> List[StructuredRegistration]:
        local_ids = [
            scope.id for scope in self.scopes
            if scope.is_account and scope.id != self.global_account_id
        ]
        local, shared = await self.store.read_both(
            self.store.structured_bindings(local_ids, Partition.LOCAL),
            self.store.structured_bindings([self.global_account_id], Partition.GLOBAL),
        )

        keys: Dict[str, tuple] = {}
        for key, configuration in local + shared:
            if not key.usable or key.id in keys:
                continue
            keys[key.id] = (key, configuration)

        installed = await self.store.installed_developer_key_ids(self.origin, keys.keys())
        registrations = [
            structured_registration(key, configuration, key.id in installed)
            for key, configuration in keys.values()
        ]
        registrations.sort(key=lambda registration: registration.sort_key)
        logger.debug(f"Loaded {len(registrations)} structured registrations for {self.origin}")
        return registrations

    async def iterate(self, after: Optional[SortKey] = None) -> AsyncIterator[Registration]:
        for registration in await self._registrations():
            if after is None or registration.sort_key > tuple(after):
                yield registration
