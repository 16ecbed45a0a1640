"""Test case catalog entities."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum


class CatalogError(ValueError):
    """Raised when a test case or group name cannot be resolved."""


class Product(str, Enum):
    """Product area a test case exercises."""

    ACADEMIC_SCHEDULING = "Academic Scheduling"
    CURRICULUM_MANAGEMENT = "Curriculum Management"

    @property
    def slug(self) -> str:
        return "academic-scheduling" if self is Product.ACADEMIC_SCHEDULING else "curriculum"

    @property
    def folder_name(self) -> str:
        return self.value.replace(" ", "")

    @classmethod
    def from_slug(cls, value: str) -> Product:
        normalized = value.strip().lower()
        for product in cls:
            if normalized in {product.slug, product.value.lower(), product.name.lower()}:
                return product
        raise CatalogError(f"Unknown product: {value}")


class EntityKind(str, Enum):
    """Kind of record a test case mutates."""

    SECTION = "section"
    RELATIONSHIP = "relationship"
    COURSE = "course"
    PROGRAM = "program"

    @property
    def merge_entity_type(self) -> str:
        """Entity type understood by the merge settings and history endpoints."""
        return _MERGE_ENTITY_TYPES[self]

    @property
    def surface_path(self) -> str:
        """Application route of the list surface for this kind."""
        return _SURFACE_PATHS[self]


_MERGE_ENTITY_TYPES = {
    EntityKind.SECTION: "sections",
    EntityKind.RELATIONSHIP: "relationships",
    EntityKind.COURSE: "coursesCm",
    EntityKind.PROGRAM: "programs",
}

_SURFACE_PATHS = {
    EntityKind.SECTION: "sm/section-dashboard",
    EntityKind.RELATIONSHIP: "sm/section-dashboard",
    EntityKind.COURSE: "cm/courses",
    EntityKind.PROGRAM: "cm/programs",
}

MERGE_ENTITY_DISPLAY_NAMES = {
    "sections": "Sections",
    "relationships": "Relationships",
    "coursesCm": "Courses",
    "programs": "Programs",
}


class FormKind(str, Enum):
    """Which configurable form a test case opens, if any."""

    NONE = "none"
    COURSE = "course"
    PROGRAM = "program"


@dataclass(frozen=True)
class TestCaseDefinition:
    """Static attributes attached to one test case variant."""

    __test__ = False

    product: Product
    entity_kind: EntityKind
    creates_entity: bool
    form_kind: FormKind
    screenshot_regions: tuple[str, ...]


class TestCase(str, Enum):
    """Enumerated test case variants keyed by their operator-facing action name."""

    __test__ = False

    UPDATE = "update"
    CREATE = "create"
    CREATE_NO_MEETING_OR_PROFESSOR = "createNoMeetNoProf"
    EDIT_RELATIONSHIPS = "editRelationships"
    CREATE_RELATIONSHIPS = "createRelationships"
    INACTIVATE_SECTION = "inactivateSection"
    UPDATE_COURSE = "updateCourse"
    INACTIVATE_COURSE = "inactivateCourse"
    NEW_COURSE_REVISION = "newCourseRevision"
    PROPOSE_NEW_COURSE = "createCourse"
    UPDATE_PROGRAM = "updateProgram"
    CREATE_PROGRAM = "createProgram"

    @property
    def action(self) -> str:
        return self.value

    @property
    def definition(self) -> TestCaseDefinition:
        return _DEFINITIONS[self]

    @property
    def product(self) -> Product:
        return self.definition.product

    @property
    def entity_kind(self) -> EntityKind:
        return self.definition.entity_kind

    @property
    def merge_entity_type(self) -> str:
        return self.definition.entity_kind.merge_entity_type

    @property
    def creates_entity(self) -> bool:
        return self.definition.creates_entity

    @property
    def screenshot_regions(self) -> tuple[str, ...]:
        return self.definition.screenshot_regions

    @classmethod
    def from_action(cls, value: str) -> TestCase:
        normalized = value.strip().lower()
        for case in cls:
            if normalized in {case.value.lower(), case.name.lower()}:
                return case
        raise CatalogError(f"Unknown test case: {value}")


_SECTION_REGIONS = ("meeting-patterns", "instructors")
_RELATIONSHIP_REGIONS = ("relationships",)
_PROGRAM_REGIONS = ("ownership", "specializations")

_DEFINITIONS: dict[TestCase, TestCaseDefinition] = {
    TestCase.UPDATE: TestCaseDefinition(
        Product.ACADEMIC_SCHEDULING, EntityKind.SECTION, False, FormKind.NONE, _SECTION_REGIONS
    ),
    TestCase.CREATE: TestCaseDefinition(
        Product.ACADEMIC_SCHEDULING, EntityKind.SECTION, True, FormKind.NONE, _SECTION_REGIONS
    ),
    TestCase.CREATE_NO_MEETING_OR_PROFESSOR: TestCaseDefinition(
        Product.ACADEMIC_SCHEDULING, EntityKind.SECTION, True, FormKind.NONE, ()
    ),
    TestCase.EDIT_RELATIONSHIPS: TestCaseDefinition(
        Product.ACADEMIC_SCHEDULING,
        EntityKind.RELATIONSHIP,
        False,
        FormKind.NONE,
        _RELATIONSHIP_REGIONS,
    ),
    TestCase.CREATE_RELATIONSHIPS: TestCaseDefinition(
        Product.ACADEMIC_SCHEDULING,
        EntityKind.RELATIONSHIP,
        True,
        FormKind.NONE,
        _RELATIONSHIP_REGIONS,
    ),
    TestCase.INACTIVATE_SECTION: TestCaseDefinition(
        Product.ACADEMIC_SCHEDULING, EntityKind.SECTION, False, FormKind.NONE, ()
    ),
    TestCase.UPDATE_COURSE: TestCaseDefinition(
        Product.CURRICULUM_MANAGEMENT, EntityKind.COURSE, False, FormKind.NONE, ()
    ),
    TestCase.INACTIVATE_COURSE: TestCaseDefinition(
        Product.CURRICULUM_MANAGEMENT, EntityKind.COURSE, False, FormKind.NONE, ()
    ),
    TestCase.NEW_COURSE_REVISION: TestCaseDefinition(
        Product.CURRICULUM_MANAGEMENT, EntityKind.COURSE, False, FormKind.COURSE, ()
    ),
    TestCase.PROPOSE_NEW_COURSE: TestCaseDefinition(
        Product.CURRICULUM_MANAGEMENT, EntityKind.COURSE, True, FormKind.COURSE, ()
    ),
    TestCase.UPDATE_PROGRAM: TestCaseDefinition(
        Product.CURRICULUM_MANAGEMENT, EntityKind.PROGRAM, False, FormKind.NONE, _PROGRAM_REGIONS
    ),
    TestCase.CREATE_PROGRAM: TestCaseDefinition(
        Product.CURRICULUM_MANAGEMENT, EntityKind.PROGRAM, True, FormKind.PROGRAM, _PROGRAM_REGIONS
    ),
}

TEST_CASE_GROUPS: dict[str, tuple[TestCase, ...]] = {
    "all": (
        TestCase.UPDATE,
        TestCase.CREATE,
        TestCase.CREATE_NO_MEETING_OR_PROFESSOR,
        TestCase.EDIT_RELATIONSHIPS,
        TestCase.CREATE_RELATIONSHIPS,
        TestCase.INACTIVATE_SECTION,
    ),
    "courseAll": (
        TestCase.UPDATE_COURSE,
        TestCase.INACTIVATE_COURSE,
        TestCase.NEW_COURSE_REVISION,
        TestCase.PROPOSE_NEW_COURSE,
    ),
    "programAll": (TestCase.UPDATE_PROGRAM, TestCase.CREATE_PROGRAM),
}
TEST_CASE_GROUPS["both"] = TEST_CASE_GROUPS["all"] + TEST_CASE_GROUPS["courseAll"]


def resolve_test_cases(
    names: Iterable[str],
    *,
    product: Product | None = None,
) -> tuple[TestCase, ...]:
    """Expand test case and group names into an ordered, de-duplicated selection.

    Without any names the product's full catalog is selected. When a product is
    given, every selected test case must belong to it.
    """
    requested = [name for name in names if name and name.strip()]
    selected: list[TestCase] = []
    if not requested:
        if product is None:
            raise CatalogError("Select at least one test case or a product.")
        selected = [case for case in TestCase if case.product is product]
    for name in requested:
        group = _lookup_group(name)
        for case in group if group is not None else (TestCase.from_action(name),):
            if case not in selected:
                selected.append(case)

    if product is not None:
        foreign = [case.action for case in selected if case.product is not product]
        if foreign:
            raise CatalogError(
                f"Test cases {', '.join(foreign)} do not belong to product {product.value}."
            )
    return tuple(selected)


def merge_entity_types_for(test_cases: Sequence[TestCase]) -> tuple[str, ...]:
    """Return the distinct merge entity types touched by the test cases, in selection order."""
    entity_types: list[str] = []
    for case in test_cases:
        if case.merge_entity_type not in entity_types:
            entity_types.append(case.merge_entity_type)
    return tuple(entity_types)


def _lookup_group(name: str) -> tuple[TestCase, ...] | None:
    normalized = name.strip().lower()
    for group_name, members in TEST_CASE_GROUPS.items():
        if group_name.lower() == normalized:
            return members
    return None
