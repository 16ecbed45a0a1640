"""Test case catalog exports."""

from .testcase_models import (
    MERGE_ENTITY_DISPLAY_NAMES,
    TEST_CASE_GROUPS,
    CatalogError,
    EntityKind,
    FormKind,
    Product,
    TestCase,
    TestCaseDefinition,
    merge_entity_types_for,
    resolve_test_cases,
)

__all__ = [
    "MERGE_ENTITY_DISPLAY_NAMES",
    "TEST_CASE_GROUPS",
    "CatalogError",
    "EntityKind",
    "FormKind",
    "Product",
    "TestCase",
    "TestCaseDefinition",
    "merge_entity_types_for",
    "resolve_test_cases",
]
