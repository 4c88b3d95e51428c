"""Validation and normalisation of the Figma plugin's ``fullAppConfig``.

Turns the untyped plugin payload into a list of immutable
:class:`NormalisedComponent` records plus severity-tagged validation issues.
Issues are returned as data; nothing in this module raises on bad input.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from .models import (
    JOURNEY_COMPONENT,
    SCREEN_BUILDER_COMPONENT,
    AssistJourneyConfig,
    CoreJourneyConfig,
    IssueKind,
    JourneyType,
    NormalisedComponent,
    ParseResult,
    RawComponent,
    SectionType,
    ValidationIssue,
    WebviewJourneyConfig,
    has_errors,
)
from ..utils import title_case_id

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_VALID_MODES = ("light", "dark")
_SECTION_TYPES = {member.value for member in SectionType}

HOME_OPTION_REQUIRED = "sectionHomeOption is required when sectionHome is true"
JOURNEY_OPTION_REQUIRED = "Journey component must have a journeyOption"
JOURNEY_CONFIG_MISSING = "Journey component missing configuration"


# ---------------------------------------------------------------------------
# Property helpers
# ---------------------------------------------------------------------------

def _strip_suffix(key: str) -> str:
    return key.split("#", 1)[0]


def clean_properties(value: Any) -> Any:
    """Strip legacy ``#<suffix>`` markers from every mapping key.

    Recurses into nested mappings and lists. When a plain key and a suffixed
    variant of it are both present (``title`` and ``title#381:0``), the plain
    key wins. Applying the function twice gives the same result as once.
    """
    if isinstance(value, dict):
        cleaned: dict[str, Any] = {}
        plain_keys: set[str] = set()
        for key, item in value.items():
            stripped = _strip_suffix(str(key))
            is_plain = stripped == key
            if stripped in cleaned and not is_plain and stripped in plain_keys:
                continue
            cleaned[stripped] = clean_properties(item)
            if is_plain:
                plain_keys.add(stripped)
        return cleaned
    if isinstance(value, list):
        return [clean_properties(item) for item in value]
    return value


def _first_string(props: dict[str, Any], *keys: str) -> Optional[str]:
    """Return the first non-blank string among *keys*, trimmed."""
    for key in keys:
        candidate = props.get(key)
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    return None


def _first_bool(props: dict[str, Any], *keys: str) -> Optional[bool]:
    for key in keys:
        coerced = _coerce_bool(props.get(key))
        if coerced is not None:
            return coerced
    return None


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------

def extract_id(props: dict[str, Any], node_id: str) -> str:
    """``id`` -> ``prop0`` -> ``component-<nodeId>``."""
    explicit = _first_string(props, "id", "prop0")
    if explicit:
        return explicit
    return f"component-{node_id.replace(':', '-')}"


def extract_section_type(props: dict[str, Any], component_type: str) -> SectionType:
    raw = _first_string(props, "section_type", "prop1")
    if raw and raw.lower() in _SECTION_TYPES:
        return SectionType(raw.lower())
    if component_type == JOURNEY_COMPONENT:
        return SectionType.MAIN_CAROUSEL
    return SectionType.SLIDE


def extract_is_home(props: dict[str, Any]) -> bool:
    return bool(_first_bool(props, "sectionHome", "prop2"))


# Variant-keyed table: journey type -> (model, [(field, keys..., kind)])
_JOURNEY_FIELDS: dict[JourneyType, tuple[type, list[tuple[str, tuple[str, ...], str]]]] = {
    JourneyType.CORE: (
        CoreJourneyConfig,
        [("customer_id", ("customerId", "prop3"), "str")],
    ),
    JourneyType.ASSIST: (
        AssistJourneyConfig,
        [
            ("enable_tts", ("enableTTS", "prop3"), "bool"),
            ("enable_gemini", ("enableGemini", "prop4"), "bool"),
        ],
    ),
    JourneyType.WEBVIEW: (
        WebviewJourneyConfig,
        [("default_url", ("defaultUrl", "prop3"), "str")],
    ),
}

_FIELD_READERS: dict[str, Callable[..., Any]] = {
    "str": _first_string,
    "bool": _first_bool,
}


def extract_journey_config(
    props: dict[str, Any],
    node_id: str,
    issues: list[ValidationIssue],
):
    """Build the journey sub-configuration for a ``Journey`` component.

    Returns ``None`` (and records an error) when ``journeyOption`` is missing
    or names an unknown journey.
    """
    option = _first_string(props, "journeyOption")
    if option is None:
        issues.append(
            ValidationIssue.error(
                IssueKind.JOURNEY, JOURNEY_OPTION_REQUIRED,
                field="journeyOption", component=node_id,
            )
        )
        return None

    try:
        journey_type = JourneyType(option)
    except ValueError:
        issues.append(
            ValidationIssue.error(
                IssueKind.JOURNEY,
                f"Unknown journeyOption: {option}",
                field="journeyOption",
                component=node_id,
            )
        )
        return None

    model, fields = _JOURNEY_FIELDS[journey_type]
    values: dict[str, Any] = {}
    for field_name, keys, reader in fields:
        found = _FIELD_READERS[reader](props, *keys)
        if found is not None:
            values[field_name] = found
    return model(**values)


# ---------------------------------------------------------------------------
# Structural validation
# ---------------------------------------------------------------------------

def _validate_structure(raw: Any, issues: list[ValidationIssue]) -> bool:
    if not isinstance(raw, dict):
        issues.append(ValidationIssue.error(IssueKind.STRUCTURE, "Config must be a valid object"))
        return False

    if not isinstance(raw.get("appName"), str) or not raw["appName"].strip():
        issues.append(
            ValidationIssue.error(
                IssueKind.STRUCTURE, "appName is required and must be a string", field="appName"
            )
        )

    if not isinstance(raw.get("appFrame"), dict):
        issues.append(
            ValidationIssue.error(
                IssueKind.STRUCTURE, "appFrame is required and must be an object", field="appFrame"
            )
        )

    components = raw.get("components")
    if not isinstance(components, list):
        issues.append(
            ValidationIssue.error(
                IssueKind.STRUCTURE,
                "components is required and must be an array",
                field="components",
            )
        )
        return False

    if not components:
        issues.append(
            ValidationIssue.warning(
                IssueKind.STRUCTURE, "No components found in config", field="components"
            )
        )

    return not has_errors(issues)


def _validate_app_frame(app_frame: dict[str, Any], issues: list[ValidationIssue]) -> None:
    brand = app_frame.get("brand")
    if not isinstance(brand, str) or not brand.strip():
        issues.append(
            ValidationIssue.error(IssueKind.APP_FRAME, "Brand is required", field="appFrame.brand")
        )

    if app_frame.get("mode") not in _VALID_MODES:
        issues.append(
            ValidationIssue.error(
                IssueKind.APP_FRAME,
                'Mode must be either "light" or "dark"',
                field="appFrame.mode",
            )
        )

    api_base = app_frame.get("apiBase")
    if not isinstance(api_base, str) or not api_base.strip():
        issues.append(
            ValidationIssue.warning(
                IssueKind.APP_FRAME, "API base URL is recommended", field="appFrame.apiBase"
            )
        )


# ---------------------------------------------------------------------------
# Component normalisation
# ---------------------------------------------------------------------------

def normalise_component(
    raw: RawComponent,
    issues: list[ValidationIssue],
    seen_ids: set[str],
) -> NormalisedComponent:
    """Normalise one raw component, appending any issues it produces."""
    props = clean_properties(raw.properties)
    component_type = raw.component_name

    component_id = extract_id(props, raw.node_id)
    if component_id in seen_ids:
        issues.append(
            ValidationIssue.warning(
                IssueKind.DUPLICATE_ID,
                f"Duplicate ID found: {component_id}. Using last occurrence.",
                component=raw.node_id,
            )
        )

    is_home = extract_is_home(props)
    home_section: Optional[str] = None
    if is_home:
        option = props.get("sectionHomeOption")
        if isinstance(option, str) and option.strip():
            home_section = option.strip().lower()
        else:
            issues.append(
                ValidationIssue.error(
                    IssueKind.HOME_SECTION,
                    HOME_OPTION_REQUIRED,
                    field="sectionHomeOption",
                    component=raw.node_id,
                )
            )

    journey_config = None
    if component_type == JOURNEY_COMPONENT:
        journey_config = extract_journey_config(props, raw.node_id, issues)

    return NormalisedComponent(
        id=component_id,
        name=_first_string(props, "name") or title_case_id(component_id),
        title=_first_string(props, "title"),
        component_type=component_type,
        node_id=raw.node_id,
        section_type=extract_section_type(props, component_type),
        is_home=is_home,
        home_section=home_section,
        properties=props,
        journey_type=journey_config.journey_type if journey_config else None,
        journey_config=journey_config,
    )


def _normalise_components(
    components: list[Any], issues: list[ValidationIssue]
) -> list[NormalisedComponent]:
    normalised: list[NormalisedComponent] = []
    seen_ids: set[str] = set()

    for index, entry in enumerate(components):
        node_id = entry.get("nodeId") if isinstance(entry, dict) else None
        try:
            raw = RawComponent.model_validate(entry)
            component = normalise_component(raw, issues, seen_ids)
        except (PydanticValidationError, TypeError, ValueError) as exc:
            logger.debug("Component %s failed to normalise: %s", index, exc)
            issues.append(
                ValidationIssue.error(
                    IssueKind.COMPONENT,
                    f"Failed to normalise component at index {index}: {exc}",
                    component=str(node_id) if node_id else None,
                )
            )
            continue
        normalised.append(component)
        seen_ids.add(component.id)

    return normalised


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(raw_config: Any) -> ParseResult:
    """Validate and normalise a raw ``fullAppConfig`` payload.

    Structural errors short-circuit before any component is looked at.
    ``success`` is True iff no issue of severity ``error`` was produced.
    """
    issues: list[ValidationIssue] = []

    if not _validate_structure(raw_config, issues):
        return ParseResult(success=False, errors=issues)

    _validate_app_frame(raw_config["appFrame"], issues)
    normalised = _normalise_components(raw_config["components"], issues)

    logger.debug(
        "Parsed %d of %d components (%d issues)",
        len(normalised), len(raw_config["components"]), len(issues),
    )
    return ParseResult(
        success=not has_errors(issues),
        config=raw_config,
        normalised=normalised,
        errors=issues,
    )


def validate_normalised_components(
    components: list[NormalisedComponent],
) -> list[ValidationIssue]:
    """Cross-component checks run after normalisation.

    Multiple home components aimed at the same slot are a warning (the last
    one wins downstream); a Journey with no configuration is an error.
    """
    issues: list[ValidationIssue] = []

    home_slots: dict[str, list[str]] = {}
    for component in components:
        if component.is_home and component.home_section:
            key = f"{component.section_type.value}-{component.home_section}"
            home_slots.setdefault(key, []).append(component.id)

    for key, ids in home_slots.items():
        if len(ids) > 1:
            issues.append(
                ValidationIssue.warning(
                    IssueKind.HOME_CONFLICT,
                    f"Multiple components targeting same home section: {key}. "
                    f"Components: {', '.join(ids)}. Last one will be used.",
                )
            )

    for component in components:
        if component.is_journey and component.journey_config is None:
            issues.append(
                ValidationIssue.error(
                    IssueKind.JOURNEY, JOURNEY_CONFIG_MISSING, component=component.id
                )
            )

    return issues


def generate_parse_summary(components: list[NormalisedComponent]) -> str:
    """One-line count summary of a normalised component list."""
    journeys = sum(1 for c in components if c.component_type == JOURNEY_COMPONENT)
    screens = sum(1 for c in components if c.component_type == SCREEN_BUILDER_COMPONENT)
    homes = sum(1 for c in components if c.is_home)
    return (
        f"Parsed {len(components)} components: {journeys} Journeys, "
        f"{screens} ScreenBuilders. {homes} home sections, "
        f"{len(components) - homes} child screens."
    )
