"""Scope and registration types shared by every registration source."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


SortKey = Tuple[str, str]

GLOBAL_NAVIGATION = "global_navigation"

# Named UI insertion points a registration may declare.
PLACEMENTS = (
    "account_navigation",
    "assignment_selection",
    "course_home_sub_navigation",
    "course_navigation",
    "course_settings_sub_navigation",
    "editor_button",
    "global_navigation",
    "homework_submission",
    "link_selection",
    "migration_selection",
    "resource_selection",
    "tool_configuration",
    "user_navigation",
)


class ScopeKind(str, Enum):
    """Kinds of organizational node."""
    ACCOUNT = "Account"
    COURSE = "Course"


class Action(str, Enum):
    """Actions checked against the permission gate."""
    READ = "read"
    READ_AS_ADMIN = "read_as_admin"


class RegistrationFormat(str, Enum):
    """Generation of integration metadata a registration was described with."""
    LTI_1_1 = "lti_1_1"
    LTI_2_0 = "lti_2_0"
    LTI_1_3 = "lti_1_3"

    @property
    def message_type(self) -> str:
        if self is RegistrationFormat.LTI_1_3:
            return "LtiResourceLinkRequest"
        return "basic-lti-launch-request"


@dataclass(frozen=True)
class ScopeRef:
    """Reference to an account or course."""
    kind: ScopeKind
    id: str

    def __post_init__(self):
        if not isinstance(self.kind, ScopeKind):
            raise ValueError(f"Unknown scope kind: {self.kind!r}")
        if not isinstance(self.id, str) or not self.id:
            raise ValueError(f"Scope id must be a non-empty string, got {self.id!r}")

    @classmethod
    def account(cls, account_id: str) -> "ScopeRef":
        return cls(ScopeKind.ACCOUNT, account_id)

    @classmethod
    def course(cls, course_id: str) -> "ScopeRef":
        return cls(ScopeKind.COURSE, course_id)

    @property
    def is_account(self) -> bool:
        return self.kind is ScopeKind.ACCOUNT

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


@dataclass(frozen=True)
class Registration(ABC):
    """An installable tool integration, independent of its record format.

    ``placements`` maps each declared placement name to its launch config
    (``url``, ``title``, ``icon_url``, ``message_type``, ``visibility``, ...).
    """
    id: str
    name: str
    format: RegistrationFormat
    placements: Dict[str, Dict[str, Any]]
    description: Optional[str] = None
    context: Optional[ScopeRef] = None
    enabled: bool = True
    developer_key_id: Optional[str] = None

    @property
    def sort_key(self) -> SortKey:
        return (self.name, self.id)

    @property
    @abstractmethod
    def definition_type(self) -> str:
        """Record type reported in listings and launch definitions."""
        pass

    def supports(self, placement: str) -> bool:
        return placement in self.placements


@dataclass(frozen=True)
class LegacyRegistration(Registration):
    """A self-contained record: an external tool or an LTI 2.0 tool proxy."""
    record_type: str = "ContextExternalTool"
    is_shared: bool = False

    @property
    def definition_type(self) -> str:
        return self.record_type


@dataclass(frozen=True)
class StructuredRegistration(Registration):
    """A registration derived from a developer key's structured configuration."""
    configuration: Dict[str, Any] = field(default_factory=dict)
    installed: bool = False

    @property
    def definition_type(self) -> str:
        return "Lti::ToolConfiguration"
