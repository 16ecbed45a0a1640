"""Template-fill planning from form templates and SIS profiles."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from sis_merge_verifier.case_catalog import EntityKind, TestCase
from sis_merge_verifier.configuration import OwnershipSplitPolicy
from sis_merge_verifier.sis_profiles import ProgramOwnershipRule, SisProfile


class FieldKind(str, Enum):
    """Input widget families the executor knows how to set."""

    TEXT = "text"
    NUMBER = "number"
    CHOICE = "choice"
    YES_NO = "yes_no"
    DATE = "date"


_QUESTION_KINDS = {
    "text": FieldKind.TEXT,
    "textarea": FieldKind.TEXT,
    "input": FieldKind.TEXT,
    "wysiwyg": FieldKind.TEXT,
    "number": FieldKind.NUMBER,
    "credits": FieldKind.NUMBER,
    "select": FieldKind.CHOICE,
    "multiselect": FieldKind.CHOICE,
    "dropdown": FieldKind.CHOICE,
    "choice": FieldKind.CHOICE,
    "yesno": FieldKind.YES_NO,
    "yes_no": FieldKind.YES_NO,
    "boolean": FieldKind.YES_NO,
    "date": FieldKind.DATE,
}

STATUS_FIELDS = ("status", "statusCode")
INACTIVE_LABEL = "Inactive"

PROTECTED_FIELDS: dict[EntityKind, frozenset[str]] = {
    EntityKind.SECTION: frozenset(
        {
            "ethosId",
            "callNumber",
            "secBillingPeriodType",
            "durationUnits",
            "sectionNumber",
            "meetingPattern",
            "professors",
            "preferredRoomCapacity",
            "preferredBuilding",
            "preferredRoomFeatures",
            "startDate",
            "endDate",
            "sectionNumberBanner",
            "bannerSectionNumber",
        }
    ),
    EntityKind.RELATIONSHIP: frozenset({"id", "sisId", "sections"}),
    EntityKind.COURSE: frozenset(
        {
            "effectiveStartDate",
            "effectiveEndDate",
            "crsApprovalDate",
            "crsStatusDate",
            "subjectCode",
            "courseNumber",
            "crsApprovalAgencyIds",
            "status",
            "sisId",
            "allowIntegration",
            "firstAvailable",
            "studentEligibilityReference",
            "studentEligibilityRule",
        }
    ),
    EntityKind.PROGRAM: frozenset(
        {
            "degreeMaps",
            "requisites",
            "learningOutcomes",
            "files",
            "catalogImageUrl",
            "catalogFullDescription",
            "catalogDisplayName",
            "catalogDescription",
            "departmentOwnership",
            "effectiveEndDate",
            "sisId",
            "allowIntegration",
            "status",
            "programCode",
        }
    ),
}

OWNERSHIP_FIELDS = frozenset(
    {"splitOwnership", "departments", "departmentOwnership", "specializations"}
)

_INACTIVATING_CASES = frozenset({TestCase.INACTIVATE_SECTION, TestCase.INACTIVATE_COURSE})


@dataclass(frozen=True)
class FillStep:
    """One field assignment; `value=None` on a choice means the first selectable option."""

    qid: str
    kind: FieldKind
    value: str | None
    label: str


@dataclass(frozen=True)
class SkippedField:
    qid: str
    reason: str


@dataclass(frozen=True)
class FillPlan:
    """Ordered field assignments plus the structural adjustments of the SIS profile."""

    steps: tuple[FillStep, ...]
    skipped: tuple[SkippedField, ...]
    ownership: ProgramOwnershipRule | None = None
    ownership_policy: OwnershipSplitPolicy = OwnershipSplitPolicy.EVEN
    trim_instructional_methods: bool = False

    @property
    def field_ids(self) -> tuple[str, ...]:
        return tuple(step.qid for step in self.steps) + tuple(item.qid for item in self.skipped)


def build_fill_plan(
    test_case: TestCase,
    questions: Mapping[str, Any],
    profile: SisProfile,
    *,
    stamp: str,
    today: date,
    ownership_policy: OwnershipSplitPolicy = OwnershipSplitPolicy.EVEN,
) -> FillPlan:
    """Derive the fill plan for a test case from its form template questions."""
    entity_kind = test_case.entity_kind
    protected = PROTECTED_FIELDS[entity_kind]
    ownership = profile.program_ownership if entity_kind is EntityKind.PROGRAM else None
    steps: list[FillStep] = []
    skipped: list[SkippedField] = []

    for qid, question in questions.items():
        question = question if isinstance(question, Mapping) else {}
        label = str(question.get("label") or qid)
        if test_case in _INACTIVATING_CASES:
            if qid in STATUS_FIELDS:
                steps.append(FillStep(qid, FieldKind.CHOICE, INACTIVE_LABEL, label))
            else:
                skipped.append(SkippedField(qid, "inactivation only edits status"))
            continue
        if question.get("hidden"):
            skipped.append(SkippedField(qid, "hidden in form template"))
            continue
        if qid in protected:
            skipped.append(SkippedField(qid, "protected field"))
            continue
        if test_case is TestCase.UPDATE and qid in STATUS_FIELDS:
            skipped.append(SkippedField(qid, "status is not edited on update"))
            continue
        if ownership is not None and qid in OWNERSHIP_FIELDS:
            skipped.append(SkippedField(qid, "set by ownership rules"))
            continue
        kind = _question_kind(question)
        if kind is None:
            skipped.append(SkippedField(qid, "unsupported question type"))
            continue
        steps.append(FillStep(qid, kind, _value_for(kind, test_case, stamp, today), label))

    for extra in profile.extra_fields_for(entity_kind):
        kind = FieldKind(extra.kind)
        value = extra.value or _value_for(kind, test_case, stamp, today)
        steps.append(FillStep(extra.qid, kind, value, extra.qid))
    if ownership is not None and ownership.require_specialization:
        for extra in profile.specialization_fields:
            kind = FieldKind(extra.kind)
            steps.append(
                FillStep(extra.qid, kind, _value_for(kind, test_case, stamp, today), extra.qid)
            )

    return FillPlan(
        steps=tuple(steps),
        skipped=tuple(skipped),
        ownership=ownership,
        ownership_policy=ownership_policy,
        trim_instructional_methods=(
            profile.single_instructional_method and entity_kind is EntityKind.SECTION
        ),
    )


def balance_ownership(
    department_count: int,
    policy: OwnershipSplitPolicy = OwnershipSplitPolicy.EVEN,
) -> tuple[int, ...]:
    """Split 100 percent across departments; any remainder goes to the first entries."""
    if department_count <= 0:
        raise ValueError("At least one department is required to balance ownership.")
    if policy is not OwnershipSplitPolicy.EVEN:  # pragma: no cover - single policy today
        raise ValueError(f"Unsupported ownership policy: {policy}")
    base, remainder = divmod(100, department_count)
    return tuple(base + 1 if index < remainder else base for index in range(department_count))


def _question_kind(question: Mapping[str, Any]) -> FieldKind | None:
    raw = question.get("questionType") or question.get("type") or "text"
    return _QUESTION_KINDS.get(str(raw).replace("-", "").lower())


def _value_for(kind: FieldKind, test_case: TestCase, stamp: str, today: date) -> str | None:
    if kind is FieldKind.TEXT:
        return f"QA {test_case.action} {stamp}"
    if kind is FieldKind.NUMBER:
        return "3"
    if kind is FieldKind.DATE:
        return today.strftime("%m/%d/%Y")
    return None
