"""fullAppConfig parser.

Validates the Figma plugin payload and normalises its components into the
canonical model consumed by the categoriser and the generators.

Usage::

    from appbuilder.parser import parse

    result = parse(raw_config)
    if result.success:
        print(result.normalised)
    for issue in result.errors:
        print(issue.severity, issue.message)
"""

from appbuilder.parser.models import (
    AppFrame,
    IssueKind,
    JourneyType,
    NormalisedComponent,
    ParseResult,
    SectionType,
    Severity,
    ValidationIssue,
)
from appbuilder.parser.normaliser import (
    clean_properties,
    generate_parse_summary,
    parse,
    validate_normalised_components,
)

__all__ = [
    "parse",
    "clean_properties",
    "validate_normalised_components",
    "generate_parse_summary",
    "AppFrame",
    "IssueKind",
    "JourneyType",
    "NormalisedComponent",
    "ParseResult",
    "SectionType",
    "Severity",
    "ValidationIssue",
]
