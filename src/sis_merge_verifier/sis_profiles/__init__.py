"""SIS profile exports."""

from .profile_models import (
    ExtraField,
    ProgramOwnershipRule,
    SisKind,
    SisProfile,
    resolve_sis_profile,
)

__all__ = [
    "ExtraField",
    "ProgramOwnershipRule",
    "SisKind",
    "SisProfile",
    "resolve_sis_profile",
]
