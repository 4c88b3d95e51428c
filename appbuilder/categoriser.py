"""Route categorisation for normalised components.

Partitions components into carousel, bottom-nav and child route buckets.
Home buckets are keyed by ``route_id`` (bottom-nav by route type and
``route_id``) with last-write-wins duplicate resolution; child routes are
keyed by component id so a repeated id keeps its last occurrence. Each
home overwrite is recorded as an :class:`OverrideEvent` so the warning text
is produced separately from the data mutation.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Hashable, Literal, Optional

from pydantic import BaseModel, Field

from .parser.models import IssueKind, NormalisedComponent, SectionType, ValidationIssue
from .utils import capitalize, title_case_id

logger = logging.getLogger(__name__)

CAROUSEL_ORDER: list[str] = ["summary", "everyday", "invest", "borrow", "homes", "insurance"]
BOTTOM_NAV_SECTIONS: list[str] = ["home", "apply", "cards", "payments", "search"]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class Bucket(str, Enum):
    CAROUSEL = "carousel"
    BOTTOM_NAV = "bottomNav"
    CHILD = "child"


RouteType = Literal["tab", "modal", "slide", "full"]


class RouteComponent(BaseModel):
    """One entry in a generated route table."""
    id: str
    route_id: str = Field(..., description="homeSection for home routes, id for child routes")
    name: str
    title: Optional[str] = None
    component: NormalisedComponent
    type: Optional[RouteType] = None


class CategorisedComponents(BaseModel):
    carousel_routes: list[RouteComponent] = Field(default_factory=list)
    bottom_nav_routes: list[RouteComponent] = Field(default_factory=list)
    child_routes: list[RouteComponent] = Field(default_factory=list)

    @property
    def bottom_nav_tabs(self) -> list[RouteComponent]:
        return [r for r in self.bottom_nav_routes if r.type == "tab"]

    @property
    def bottom_nav_modals(self) -> list[RouteComponent]:
        return [r for r in self.bottom_nav_routes if r.type == "modal"]


class CategorisationSummary(BaseModel):
    total_components: int = 0
    carousel_routes: int = 0
    bottom_nav_tabs: int = 0
    bottom_nav_modals: int = 0
    child_routes: int = 0
    duplicates_handled: int = 0


class OverrideEvent(BaseModel):
    """A last-write-wins overwrite inside a home bucket."""
    bucket: Bucket
    route_id: str
    previous_id: str
    new_id: str

    def describe(self) -> str:
        return (
            f"Duplicate {self.bucket.value} route '{self.route_id}': component "
            f"'{self.new_id}' overrides '{self.previous_id}'"
        )


class CategorisationResult(BaseModel):
    success: bool = True
    categorised: CategorisedComponents
    summary: CategorisationSummary
    warnings: list[ValidationIssue] = Field(default_factory=list)
    overrides: list[OverrideEvent] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Route construction
# ---------------------------------------------------------------------------

def _home_route(
    component: NormalisedComponent, home_section: str, route_type: Optional[RouteType] = None
) -> RouteComponent:
    return RouteComponent(
        id=component.id,
        route_id=home_section,
        name=capitalize(home_section),
        title=component.title,
        component=component,
        type=route_type,
    )


def _child_route(component: NormalisedComponent) -> RouteComponent:
    if component.section_type is SectionType.MODAL:
        route_type: RouteType = "modal"
    elif component.section_type is SectionType.FULL:
        route_type = "full"
    else:
        route_type = "slide"
    return RouteComponent(
        id=component.id,
        route_id=component.id,
        name=title_case_id(component.id),
        title=component.title,
        component=component,
        type=route_type,
    )


def _put(
    bucket: dict[Hashable, RouteComponent],
    key: Hashable,
    kind: Bucket,
    route: RouteComponent,
    overrides: list[OverrideEvent],
) -> None:
    # dict assignment keeps the original slot position on overwrite
    previous = bucket.get(key)
    if previous is not None:
        overrides.append(
            OverrideEvent(
                bucket=kind, route_id=route.route_id, previous_id=previous.id, new_id=route.id
            )
        )
    bucket[key] = route


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def categorise(components: list[NormalisedComponent]) -> CategorisationResult:
    """Partition *components* into route buckets."""
    carousel: dict[Hashable, RouteComponent] = {}
    # tabs and modals are keyed apart so a tab and a modal may share a homeSection
    bottom_nav: dict[Hashable, RouteComponent] = {}
    children: dict[str, RouteComponent] = {}
    overrides: list[OverrideEvent] = []
    warnings: list[ValidationIssue] = []

    for component in components:
        home_section = component.home_section
        if not (component.is_home and home_section):
            if component.id in children:
                # the parser already warned about the repeated id
                logger.debug("Child route '%s' replaced by a later occurrence", component.id)
            children[component.id] = _child_route(component)
            continue

        if component.section_type is SectionType.MAIN_CAROUSEL:
            route = _home_route(component, home_section)
            _put(carousel, home_section, Bucket.CAROUSEL, route, overrides)
        elif component.section_type is SectionType.SLIDE_PANEL:
            route = _home_route(component, home_section, "tab")
            _put(bottom_nav, ("tab", home_section), Bucket.BOTTOM_NAV, route, overrides)
        elif component.section_type is SectionType.MODAL:
            route = _home_route(component, home_section, "modal")
            _put(bottom_nav, ("modal", home_section), Bucket.BOTTOM_NAV, route, overrides)
        else:
            message = (
                f"Home component '{component.id}' has section_type "
                f"'{component.section_type.value}', expected main-carousel, slide-panel "
                f"or modal. It has been dropped from every route bucket."
            )
            logger.warning(message)
            warnings.append(
                ValidationIssue.warning(
                    IssueKind.UNMATCHED_SECTION, message, field="section_type", component=component.id
                )
            )

    for event in overrides:
        warnings.append(
            ValidationIssue.warning(IssueKind.DUPLICATE_ID, event.describe(), component=event.new_id)
        )

    categorised = CategorisedComponents(
        carousel_routes=list(carousel.values()),
        bottom_nav_routes=list(bottom_nav.values()),
        child_routes=list(children.values()),
    )
    summary = CategorisationSummary(
        total_components=len(components),
        carousel_routes=len(categorised.carousel_routes),
        bottom_nav_tabs=len(categorised.bottom_nav_tabs),
        bottom_nav_modals=len(categorised.bottom_nav_modals),
        child_routes=len(categorised.child_routes),
        duplicates_handled=len(overrides),
    )
    return CategorisationResult(
        categorised=categorised, summary=summary, warnings=warnings, overrides=overrides
    )


def sort_routes(
    routes: list[RouteComponent], kind: Literal["carousel", "bottomNav", "child"]
) -> list[RouteComponent]:
    """Return a new list in the canonical order for *kind*.

    Carousel routes follow :data:`CAROUSEL_ORDER` with unknown ids last in
    their original relative order. Bottom-nav routes keep insertion order.
    Child routes sort by id.
    """
    if kind == "carousel":
        rank = {route_id: index for index, route_id in enumerate(CAROUSEL_ORDER)}
        return sorted(routes, key=lambda r: rank.get(r.route_id, len(CAROUSEL_ORDER)))
    if kind == "bottomNav":
        return list(routes)
    return sorted(routes, key=lambda r: r.id)


def sort_categorised(categorised: CategorisedComponents) -> CategorisedComponents:
    """Apply :func:`sort_routes` to every bucket."""
    return CategorisedComponents(
        carousel_routes=sort_routes(categorised.carousel_routes, "carousel"),
        bottom_nav_routes=sort_routes(categorised.bottom_nav_routes, "bottomNav"),
        child_routes=sort_routes(categorised.child_routes, "child"),
    )


def validate_categorisation(categorised: CategorisedComponents) -> list[ValidationIssue]:
    """Check route ids against the navigation vocabularies.

    Every issue is a warning; none of them blocks a build.
    """
    issues: list[ValidationIssue] = []

    for route in categorised.carousel_routes:
        if route.route_id not in CAROUSEL_ORDER:
            issues.append(
                ValidationIssue.warning(
                    IssueKind.ROUTE_VOCABULARY,
                    f"Invalid carousel section '{route.route_id}' in component '{route.id}'. "
                    f"Valid options: {', '.join(CAROUSEL_ORDER)}",
                    component=route.id,
                )
            )

    for route in categorised.bottom_nav_routes:
        if route.route_id not in BOTTOM_NAV_SECTIONS:
            issues.append(
                ValidationIssue.warning(
                    IssueKind.ROUTE_VOCABULARY,
                    f"Invalid bottom nav section '{route.route_id}' in component '{route.id}'. "
                    f"Valid options: {', '.join(BOTTOM_NAV_SECTIONS)}",
                    component=route.id,
                )
            )

    if not categorised.carousel_routes:
        issues.append(
            ValidationIssue.warning(
                IssueKind.EMPTY_BUCKET,
                "No carousel routes defined. App may not have main content.",
            )
        )
    if not categorised.bottom_nav_routes:
        issues.append(
            ValidationIssue.warning(
                IssueKind.EMPTY_BUCKET,
                "No bottom nav routes defined. App may not have bottom navigation.",
            )
        )
    return issues


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def get_all_routes(categorised: CategorisedComponents) -> list[RouteComponent]:
    return [
        *categorised.carousel_routes,
        *categorised.bottom_nav_routes,
        *categorised.child_routes,
    ]


def find_route_by_id(categorised: CategorisedComponents, component_id: str) -> Optional[RouteComponent]:
    for route in get_all_routes(categorised):
        if route.id == component_id:
            return route
    return None


def generate_categorisation_report(result: CategorisationResult) -> str:
    """Plain-text multi-line report used by the CLI and debug logging."""
    summary = result.summary
    categorised = result.categorised
    lines = ["=== CATEGORISATION REPORT ===", f"Total components: {summary.total_components}", ""]

    sections = [
        (f"Carousel Routes ({summary.carousel_routes})", categorised.carousel_routes),
        (
            f"Bottom Nav Routes ({summary.bottom_nav_tabs} tabs, {summary.bottom_nav_modals} modals)",
            categorised.bottom_nav_routes,
        ),
        (f"Child Routes ({summary.child_routes})", categorised.child_routes),
    ]
    for heading, routes in sections:
        lines.append(f"{heading}:")
        if not routes:
            lines.append("  (none)")
        for route in routes:
            suffix = f" [{route.type}]" if route.type else ""
            lines.append(f"  - {route.route_id}: {route.component.component_type} ({route.id}){suffix}")
        lines.append("")

    if result.warnings:
        lines.append(f"Warnings ({len(result.warnings)}):")
        lines.extend(f"  ! {w.message}" for w in result.warnings)
        lines.append("")
    if summary.duplicates_handled:
        lines.append(f"Duplicates handled: {summary.duplicates_handled} (last one wins)")
    lines.append("=== END REPORT ===")
    return "\n".join(lines)
