"""Request and response bodies for the HTTP API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import BundleType
from ..orchestrator import BuildOptions, BuildSummary
from ..parser.models import ValidationIssue


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class _Wire(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class BuildRequestOptions(_Wire):
    dry_run: bool = False
    build_type: Literal["local", "prototype"] = "local"
    figma_file_name: str = "unknown"
    figma_page_name: str = "unknown"

    def to_build_options(self) -> BuildOptions:
        return BuildOptions(
            build_type=self.build_type,
            dry_run=self.dry_run,
            figma_file_name=self.figma_file_name,
            figma_page_name=self.figma_page_name,
        )


class BuildRequest(_Wire):
    config: Optional[Any] = None
    target_path: Optional[str] = None
    options: BuildRequestOptions = Field(default_factory=BuildRequestOptions)


class BuildSummaryBody(_Wire):
    app_name: str
    total_components: int
    carousel_routes: int
    bottom_nav_routes: int
    child_routes: int
    generated_files: int
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: BuildSummary) -> "BuildSummaryBody":
        return cls.model_validate(summary.model_dump())


class BuildSuccessResponse(_Wire):
    success: Literal[True] = True
    build_id: str
    app_path: str
    duration: float
    summary: BuildSummaryBody
    timestamp: str = Field(default_factory=utc_timestamp)


class BuildErrorResponse(_Wire):
    success: Literal[False] = False
    error: str
    details: Optional[str] = None
    validation_errors: Optional[list[ValidationIssue]] = None
    timestamp: str = Field(default_factory=utc_timestamp)


class ValidateResponse(_Wire):
    valid: bool
    summary: Optional[str] = None
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    timestamp: str = Field(default_factory=utc_timestamp)


PROTOTYPE_REQUIRED_FIELDS = [
    "figmaFileId",
    "figmaFileName",
    "figmaPageName",
    "appName",
    "fullAppConfig",
]


class PrototypeAccepted(_Wire):
    job_id: str
    status: Literal["building"] = "building"
    estimated_time: int = 60
    message: str


class PrototypeBuildBody(_Wire):
    """Loose form of the prototype request used to report missing fields."""

    figma_file_id: Optional[str] = None
    figma_file_name: Optional[str] = None
    figma_page_name: Optional[str] = None
    app_name: Optional[str] = None
    full_app_config: Optional[dict[str, Any]] = None
    bundle_type: Optional[BundleType] = None

    def missing(self) -> list[str]:
        values = self.model_dump(by_alias=True)
        return [name for name in PROTOTYPE_REQUIRED_FIELDS if not values.get(name)]


def dump(model: BaseModel) -> dict[str, Any]:
    """JSON-ready camelCase dict without null fields."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)
