"""Unit tests for route categorisation (appbuilder.categoriser)."""

from __future__ import annotations

import pytest

from appbuilder.categoriser import (
    CAROUSEL_ORDER,
    Bucket,
    categorise,
    find_route_by_id,
    generate_categorisation_report,
    get_all_routes,
    sort_categorised,
    sort_routes,
    validate_categorisation,
)
from appbuilder.parser import IssueKind, parse


def _normalise(config, components):
    config["components"] = components
    result = parse(config)
    assert result.success, result.errors
    return result.normalised


class TestCategorise:
    @pytest.mark.unit
    def test_sample_buckets(self, sample_config):
        result = categorise(parse(sample_config).normalised)
        categorised = result.categorised
        assert [r.route_id for r in categorised.carousel_routes] == ["everyday", "summary"]
        assert [(r.route_id, r.type) for r in categorised.bottom_nav_routes] == [
            ("cards", "tab"),
            ("apply", "modal"),
        ]
        assert [(r.id, r.type) for r in categorised.child_routes] == [
            ("transfer-details", "slide"),
            ("account-settings", "full"),
        ]
        assert result.summary.total_components == 6
        assert result.summary.bottom_nav_tabs == 1
        assert result.summary.bottom_nav_modals == 1
        assert result.summary.duplicates_handled == 0
        assert result.warnings == []

    @pytest.mark.unit
    def test_home_route_names(self, sample_config):
        carousel = categorise(parse(sample_config).normalised).categorised.carousel_routes
        assert carousel[0].name == "Everyday"
        assert carousel[0].title == "Everyday"
        assert carousel[0].id == "everyday-home"

    @pytest.mark.unit
    def test_child_route_uses_component_id(self, sample_config):
        child = categorise(parse(sample_config).normalised).categorised.child_routes[0]
        assert child.route_id == child.id == "transfer-details"
        assert child.name == "Transfer Details"

    @pytest.mark.unit
    def test_duplicate_carousel_last_wins(self, sample_config, screen_factory):
        components = _normalise(
            sample_config,
            [
                screen_factory("1:1", "first-summary", "main-carousel", home="summary"),
                screen_factory("1:2", "second-summary", "main-carousel", home="summary"),
            ],
        )
        result = categorise(components)
        carousel = result.categorised.carousel_routes
        assert len(carousel) == 1
        assert carousel[0].id == "second-summary"

        assert result.summary.duplicates_handled == 1
        duplicate_warnings = [w for w in result.warnings if w.kind is IssueKind.DUPLICATE_ID]
        assert len(duplicate_warnings) == 1
        assert "first-summary" in duplicate_warnings[0].message
        assert "second-summary" in duplicate_warnings[0].message
        assert result.overrides[0].bucket is Bucket.CAROUSEL

    @pytest.mark.unit
    @pytest.mark.parametrize("count", [2, 3, 5])
    def test_duplicates_handled_is_count_minus_one(self, sample_config, screen_factory, count):
        components = _normalise(
            sample_config,
            [screen_factory(f"1:{i}", f"cards-{i}", "slide-panel", home="cards") for i in range(count)],
        )
        result = categorise(components)
        assert result.summary.duplicates_handled == count - 1
        assert [r.id for r in result.categorised.bottom_nav_routes] == [f"cards-{count - 1}"]

    @pytest.mark.unit
    def test_tab_and_modal_with_same_home_section_both_survive(self, sample_config, screen_factory):
        components = _normalise(
            sample_config,
            [
                screen_factory("1:1", "cards-tab", "slide-panel", home="cards"),
                screen_factory("1:2", "cards-modal", "modal", home="cards"),
            ],
        )
        result = categorise(components)
        assert [(r.id, r.type) for r in result.categorised.bottom_nav_routes] == [
            ("cards-tab", "tab"),
            ("cards-modal", "modal"),
        ]
        assert result.summary.bottom_nav_tabs == 1
        assert result.summary.bottom_nav_modals == 1
        assert result.summary.duplicates_handled == 0
        assert result.overrides == []

    @pytest.mark.unit
    def test_modal_override_keeps_first_slot(self, sample_config, screen_factory):
        components = _normalise(
            sample_config,
            [
                screen_factory("1:1", "apply-first", "modal", home="apply"),
                screen_factory("1:2", "search-tab", "slide-panel", home="search"),
                screen_factory("1:3", "apply-second", "modal", home="apply"),
            ],
        )
        result = categorise(components)
        assert [r.id for r in result.categorised.bottom_nav_routes] == ["apply-second", "search-tab"]
        assert result.summary.duplicates_handled == 1
        assert result.overrides[0].bucket is Bucket.BOTTOM_NAV

    @pytest.mark.unit
    def test_repeated_child_id_keeps_last_occurrence(self, sample_config, screen_factory):
        components = _normalise(
            sample_config,
            [
                screen_factory("1:1", "dup-screen", "slide"),
                screen_factory("1:2", "dup-screen", "full"),
            ],
        )
        result = categorise(components)
        assert [(r.id, r.type) for r in result.categorised.child_routes] == [("dup-screen", "full")]
        assert result.summary.child_routes == 1
        assert result.summary.duplicates_handled == 0

    @pytest.mark.unit
    def test_unmatched_home_section_type_is_dropped_loudly(self, sample_config, screen_factory):
        components = _normalise(
            sample_config, [screen_factory("1:1", "lost", "slide", home="summary")]
        )
        result = categorise(components)
        assert get_all_routes(result.categorised) == []
        assert len(result.warnings) == 1
        assert result.warnings[0].kind is IssueKind.UNMATCHED_SECTION
        assert "lost" in result.warnings[0].message

    @pytest.mark.unit
    def test_home_without_section_becomes_child(self, sample_config):
        sample_config["components"] = [
            {
                "nodeId": "9:9",
                "componentName": "ScreenBuilder_frame",
                "properties": {"id": "half-home", "sectionHome": True, "section_type": "main-carousel"},
            }
        ]
        normalised = parse(sample_config).normalised
        result = categorise(normalised)
        assert [r.id for r in result.categorised.child_routes] == ["half-home"]


class TestSorting:
    @pytest.mark.unit
    def test_carousel_canonical_order_then_unknown(self, sample_config, screen_factory):
        components = _normalise(
            sample_config,
            [
                screen_factory("1:1", "c-zeta", "main-carousel", home="zeta"),
                screen_factory("1:2", "c-homes", "main-carousel", home="homes"),
                screen_factory("1:3", "c-alpha", "main-carousel", home="alpha"),
                screen_factory("1:4", "c-summary", "main-carousel", home="summary"),
            ],
        )
        routes = categorise(components).categorised.carousel_routes
        ordered = sort_routes(routes, "carousel")
        assert [r.route_id for r in ordered] == ["summary", "homes", "zeta", "alpha"]

    @pytest.mark.unit
    def test_bottom_nav_keeps_insertion_order(self, sample_config, screen_factory):
        components = _normalise(
            sample_config,
            [
                screen_factory("1:1", "s", "slide-panel", home="search"),
                screen_factory("1:2", "a", "modal", home="apply"),
                screen_factory("1:3", "h", "slide-panel", home="home"),
            ],
        )
        routes = categorise(components).categorised.bottom_nav_routes
        assert [r.route_id for r in sort_routes(routes, "bottomNav")] == ["search", "apply", "home"]

    @pytest.mark.unit
    def test_children_sorted_by_id(self, sample_config):
        categorised = sort_categorised(categorise(parse(sample_config).normalised).categorised)
        assert [r.id for r in categorised.child_routes] == ["account-settings", "transfer-details"]
        assert [r.route_id for r in categorised.carousel_routes] == ["summary", "everyday"]

    @pytest.mark.unit
    def test_sort_returns_new_list(self, sample_config):
        routes = categorise(parse(sample_config).normalised).categorised.child_routes
        ordered = sort_routes(routes, "child")
        assert ordered is not routes


class TestValidation:
    @pytest.mark.unit
    def test_valid_sample_has_no_issues(self, sample_config):
        categorised = categorise(parse(sample_config).normalised).categorised
        assert validate_categorisation(categorised) == []

    @pytest.mark.unit
    def test_unknown_vocabulary_and_empty_bucket(self, sample_config, screen_factory):
        components = _normalise(
            sample_config, [screen_factory("1:1", "c", "main-carousel", home="pension")]
        )
        issues = validate_categorisation(categorise(components).categorised)
        kinds = [issue.kind for issue in issues]
        assert kinds == [IssueKind.ROUTE_VOCABULARY, IssueKind.EMPTY_BUCKET]
        assert all(not issue.is_error for issue in issues)
        assert ", ".join(CAROUSEL_ORDER) in issues[0].message


class TestHelpers:
    @pytest.mark.unit
    def test_get_all_routes_and_find(self, sample_config):
        categorised = categorise(parse(sample_config).normalised).categorised
        assert len(get_all_routes(categorised)) == 6
        assert find_route_by_id(categorised, "apply-modal").route_id == "apply"
        assert find_route_by_id(categorised, "missing") is None

    @pytest.mark.unit
    def test_report_mentions_every_bucket(self, sample_config):
        report = generate_categorisation_report(categorise(parse(sample_config).normalised))
        assert "Carousel Routes (2)" in report
        assert "Bottom Nav Routes (1 tabs, 1 modals)" in report
        assert "Child Routes (2)" in report
        assert report.endswith("=== END REPORT ===")
