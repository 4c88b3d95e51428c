"""Pydantic v2 models for the fullAppConfig parser.

Defines the raw plugin payload records, the canonical normalised component
model, the journey configuration variants and the validation issue type
shared by every stage of the build pipeline.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys on the wire."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    """Issue severity. Errors block a build, warnings never do."""
    ERROR = "error"
    WARNING = "warning"


class IssueKind(str, Enum):
    """Machine-checkable classification of a validation issue."""
    STRUCTURE = "structure"
    APP_FRAME = "app_frame"
    COMPONENT = "component"
    DUPLICATE_ID = "duplicate_id"
    HOME_SECTION = "home_section"
    JOURNEY = "journey"
    HOME_CONFLICT = "home_conflict"
    CATEGORY = "category"
    UNMATCHED_SECTION = "unmatched_section"
    ROUTE_VOCABULARY = "route_vocabulary"
    EMPTY_BUCKET = "empty_bucket"


class SectionType(str, Enum):
    """Where a component is placed in the generated navigation."""
    MAIN_CAROUSEL = "main-carousel"
    SLIDE_PANEL = "slide-panel"
    MODAL = "modal"
    SLIDE = "slide"
    FULL = "full"


class JourneyType(str, Enum):
    """Supported pluggable journey flows."""
    CORE = "CoreJourney"
    ASSIST = "AssistJourney"
    WEBVIEW = "WebviewJourney"


JOURNEY_COMPONENT = "Journey"
SCREEN_BUILDER_COMPONENT = "ScreenBuilder_frame"


# ---------------------------------------------------------------------------
# Validation issues
# ---------------------------------------------------------------------------

class ValidationIssue(CamelModel):
    """A single problem found while validating a config.

    Serialises as ``{type, kind, field?, message, component?}`` so that the
    plugin UI can keep switching on ``type``.
    """
    severity: Severity = Field(..., alias="type")
    kind: IssueKind
    field: Optional[str] = None
    message: str
    component: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    @classmethod
    def error(cls, kind: IssueKind, message: str, **extra: Any) -> "ValidationIssue":
        return cls(severity=Severity.ERROR, kind=kind, message=message, **extra)

    @classmethod
    def warning(cls, kind: IssueKind, message: str, **extra: Any) -> "ValidationIssue":
        return cls(severity=Severity.WARNING, kind=kind, message=message, **extra)


def has_errors(issues: list[ValidationIssue]) -> bool:
    """True when at least one issue blocks the build."""
    return any(issue.is_error for issue in issues)


# ---------------------------------------------------------------------------
# Raw plugin payload
# ---------------------------------------------------------------------------

class RawComponent(CamelModel):
    """A component record exactly as exported by the Figma plugin."""
    node_id: str = Field(..., description="Figma node id, e.g. '381:12'")
    component_name: str = Field(..., description="'ScreenBuilder_frame' or 'Journey'")
    properties: dict[str, Any] = Field(default_factory=dict)


class AppFrame(CamelModel):
    """App-level settings taken from the ``appFrame`` block."""
    app_name: Optional[str] = None
    brand: Optional[str] = None
    mode: Optional[Literal["light", "dark"]] = None
    api_base: Optional[str] = None
    default_customer_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Journey configuration variants
# ---------------------------------------------------------------------------

class _JourneyConfigBase(CamelModel):
    debug: bool = False
    use_mock_mode: bool = True


class CoreJourneyConfig(_JourneyConfigBase):
    journey_type: Literal[JourneyType.CORE] = JourneyType.CORE
    customer_id: Optional[str] = None


class AssistJourneyConfig(_JourneyConfigBase):
    journey_type: Literal[JourneyType.ASSIST] = JourneyType.ASSIST
    enable_tts: Optional[bool] = None
    enable_gemini: Optional[bool] = None


class WebviewJourneyConfig(_JourneyConfigBase):
    journey_type: Literal[JourneyType.WEBVIEW] = JourneyType.WEBVIEW
    default_url: Optional[str] = None


JourneyConfig = Annotated[
    Union[CoreJourneyConfig, AssistJourneyConfig, WebviewJourneyConfig],
    Field(discriminator="journey_type"),
]


# ---------------------------------------------------------------------------
# Normalised component
# ---------------------------------------------------------------------------

class NormalisedComponent(CamelModel):
    """Canonical, immutable representation of one Figma component."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)

    id: str
    name: str
    title: Optional[str] = None
    component_type: str
    node_id: str
    section_type: SectionType
    is_home: bool = False
    home_section: Optional[str] = None
    properties: dict[str, Any] = Field(default_factory=dict)
    journey_type: Optional[JourneyType] = None
    journey_config: Optional[JourneyConfig] = None

    @property
    def is_journey(self) -> bool:
        return self.component_type == JOURNEY_COMPONENT


# ---------------------------------------------------------------------------
# Top-level parse result
# ---------------------------------------------------------------------------

class ParseResult(BaseModel):
    """Outcome of parsing one ``fullAppConfig`` payload."""
    success: bool
    config: Optional[dict[str, Any]] = None
    normalised: list[NormalisedComponent] = Field(default_factory=list)
    errors: list[ValidationIssue] = Field(default_factory=list)

    @property
    def error_issues(self) -> list[ValidationIssue]:
        return [issue for issue in self.errors if issue.is_error]

    @property
    def warning_issues(self) -> list[ValidationIssue]:
        return [issue for issue in self.errors if not issue.is_error]
