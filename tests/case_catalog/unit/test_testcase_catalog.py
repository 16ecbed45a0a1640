"""Test case catalog tests."""

from __future__ import annotations

import pytest
from sis_merge_verifier.case_catalog import (
    TEST_CASE_GROUPS,
    CatalogError,
    EntityKind,
    Product,
    TestCase,
    merge_entity_types_for,
    resolve_test_cases,
)


def test_every_test_case_has_a_definition() -> None:
    for case in TestCase:
        assert case.product in Product
        assert case.entity_kind in EntityKind
        assert case.merge_entity_type


def test_product_slugs_and_folder_names() -> None:
    assert Product.ACADEMIC_SCHEDULING.slug == "academic-scheduling"
    assert Product.CURRICULUM_MANAGEMENT.slug == "curriculum"
    assert Product.ACADEMIC_SCHEDULING.folder_name == "AcademicScheduling"
    assert Product.from_slug("Curriculum Management") is Product.CURRICULUM_MANAGEMENT
    assert Product.from_slug(" academic-scheduling ") is Product.ACADEMIC_SCHEDULING


def test_unknown_product_raises() -> None:
    with pytest.raises(CatalogError, match="Unknown product"):
        Product.from_slug("billing")


def test_resolve_expands_groups_in_order_without_duplicates() -> None:
    selected = resolve_test_cases(["update", "all"])

    assert selected == TEST_CASE_GROUPS["all"]
    assert selected[0] is TestCase.UPDATE


def test_resolve_accepts_case_insensitive_names() -> None:
    assert resolve_test_cases(["UPDATECOURSE", "programall"]) == (
        TestCase.UPDATE_COURSE,
        TestCase.UPDATE_PROGRAM,
        TestCase.CREATE_PROGRAM,
    )


def test_resolve_without_names_selects_full_product_catalog() -> None:
    selected = resolve_test_cases([], product=Product.CURRICULUM_MANAGEMENT)

    assert all(case.product is Product.CURRICULUM_MANAGEMENT for case in selected)
    assert TestCase.CREATE_PROGRAM in selected
    assert TestCase.UPDATE not in selected


def test_resolve_without_names_or_product_raises() -> None:
    with pytest.raises(CatalogError, match="Select at least one"):
        resolve_test_cases(["", "  "])


def test_resolve_rejects_cases_outside_the_product() -> None:
    with pytest.raises(CatalogError, match="do not belong to product"):
        resolve_test_cases(["update", "updateCourse"], product=Product.ACADEMIC_SCHEDULING)


def test_resolve_rejects_unknown_names() -> None:
    with pytest.raises(CatalogError, match="Unknown test case: deleteEverything"):
        resolve_test_cases(["deleteEverything"])


def test_both_group_spans_sections_and_courses() -> None:
    assert TEST_CASE_GROUPS["both"][-1] is TestCase.PROPOSE_NEW_COURSE
    assert len(TEST_CASE_GROUPS["both"]) == 10


def test_merge_entity_types_are_distinct_in_selection_order() -> None:
    selected = (
        TestCase.UPDATE_COURSE,
        TestCase.UPDATE,
        TestCase.CREATE,
        TestCase.EDIT_RELATIONSHIPS,
    )

    assert merge_entity_types_for(selected) == ("coursesCm", "sections", "relationships")


def test_screenshot_regions_follow_entity_surface() -> None:
    assert TestCase.UPDATE.screenshot_regions == ("meeting-patterns", "instructors")
    assert TestCase.CREATE_NO_MEETING_OR_PROFESSOR.screenshot_regions == ()
    assert TestCase.EDIT_RELATIONSHIPS.screenshot_regions == ("relationships",)
    assert TestCase.CREATE_PROGRAM.screenshot_regions == ("ownership", "specializations")
