"""SIS profile variants resolved once per run from the school identifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from sis_merge_verifier.case_catalog import EntityKind


class SisKind(str, Enum):
    """Downstream SIS family a school integrates with."""

    PEOPLESOFT = "peoplesoft"
    BANNER_ETHOS = "banner_ethos"
    COLLEAGUE_ETHOS = "colleague_ethos"
    GENERIC = "generic"


@dataclass(frozen=True)
class ProgramOwnershipRule:
    """Structural constraints applied to program forms before the template fill."""

    split_ownership: bool
    department_count: int
    require_specialization: bool


@dataclass(frozen=True)
class ExtraField:
    """A field the SIS requires that the form template does not mark as such."""

    qid: str
    kind: str
    value: str | None = None


@dataclass(frozen=True)
class SisProfile:
    """Data-driven description of SIS-specific template-fill behaviour."""

    kind: SisKind
    program_ownership: ProgramOwnershipRule | None = None
    specialization_fields: tuple[ExtraField, ...] = ()
    single_instructional_method: bool = False
    extra_fields: dict[EntityKind, tuple[ExtraField, ...]] = field(default_factory=dict)

    def extra_fields_for(self, entity_kind: EntityKind) -> tuple[ExtraField, ...]:
        return self.extra_fields.get(entity_kind, ())


_SPECIALIZATION_PREFIX = "specializations.0."

_PEOPLESOFT_SPECIALIZATION_FIELDS = tuple(
    ExtraField(f"{_SPECIALIZATION_PREFIX}{qid}", kind)
    for qid, kind in (
        ("code", "text"),
        ("name", "text"),
        ("longName", "text"),
        ("transcriptDescription", "text"),
        ("diplomaDescription", "text"),
        ("tags", "choice"),
        ("type", "choice"),
        ("status", "choice"),
        ("cipCode", "choice"),
        ("hegisCode", "choice"),
        ("firstTermValid", "choice"),
        ("lastAdmitTerm", "choice"),
        ("defaultOfRequirementTerm", "choice"),
        ("transcriptLevel", "choice"),
        ("evaluateSubplan", "yes_no"),
        ("printOnTranscript", "yes_no"),
        ("printOnDiploma", "yes_no"),
        ("effectiveStartDate", "date"),
        ("lastProspectDate", "date"),
    )
)

_PROFILES = {
    SisKind.PEOPLESOFT: SisProfile(
        kind=SisKind.PEOPLESOFT,
        program_ownership=ProgramOwnershipRule(
            split_ownership=True,
            department_count=2,
            require_specialization=True,
        ),
        specialization_fields=_PEOPLESOFT_SPECIALIZATION_FIELDS,
    ),
    SisKind.BANNER_ETHOS: SisProfile(
        kind=SisKind.BANNER_ETHOS,
        single_instructional_method=True,
    ),
    SisKind.COLLEAGUE_ETHOS: SisProfile(
        kind=SisKind.COLLEAGUE_ETHOS,
        extra_fields={
            EntityKind.COURSE: (ExtraField("credits.creditHours.min", "number", "3"),),
        },
    ),
    SisKind.GENERIC: SisProfile(kind=SisKind.GENERIC),
}


def resolve_sis_profile(school_id: str) -> SisProfile:
    """Pick the profile whose SIS marker appears in the school id, e.g. `iwu_colleague_ethos`."""
    normalized = school_id.strip().lower()
    for kind in (SisKind.PEOPLESOFT, SisKind.BANNER_ETHOS, SisKind.COLLEAGUE_ETHOS):
        if kind.value in normalized:
            return _PROFILES[kind]
    return _PROFILES[SisKind.GENERIC]
