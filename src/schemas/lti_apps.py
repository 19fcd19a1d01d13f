"""Schemas for LTI app listings and launch definitions."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ── Admin listing ────────────────────────────────────────────────────────────


class AppDefinition(BaseModel):
    """A legacy (LTI 1.1 / 2.0) registration, or an installed LTI 1.3 tool."""
    app_type: str = Field(..., description="ContextExternalTool or Lti::ToolProxy")
    app_id: str
    name: str
    description: Optional[str] = None
    lti_version: str
    context: str
    context_id: str
    installed_locally: bool
    enabled: bool
    is_shared: bool = False
    developer_key_id: Optional[str] = None
    placements: List[str] = Field(default_factory=list)
    restriction_status: Optional[Dict[str, Any]] = Field(
        None, description="Blueprint restriction status, external tools only"
    )


class AppDefinitionListResponse(BaseModel):
    apps: List[AppDefinition]
    next_page: Optional[str] = Field(None, description="Bookmark of the next page, absent when exhausted")


class StructuredAppDefinition(BaseModel):
    """An LTI 1.3 configuration and whether it is installed in the requested scope."""
    app_type: str = "Lti::ToolConfiguration"
    app_id: str = Field(..., description="Developer key id")
    name: str
    description: Optional[str] = None
    config: Dict[str, Any]
    enabled: bool


class StructuredAppListResponse(BaseModel):
    apps: List[StructuredAppDefinition]


# ── Launch definitions ───────────────────────────────────────────────────────


class LaunchDefinition(BaseModel):
    """A registration projected onto one requested placement."""
    definition_type: str
    definition_id: str
    name: str
    description: Optional[str] = None
    placements: Dict[str, Dict[str, Any]] = Field(
        ..., description="The requested placement and its launch config"
    )


class LaunchDefinitionsResponse(BaseModel):
    placements: Dict[str, List[LaunchDefinition]]
    next_page: Optional[str] = Field(None, description="Bookmark of the next page, absent when exhausted")
